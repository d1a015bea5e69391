"""Test configuration and fixtures"""
import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY_SALT"] = "test-salt-for-testing-only"
os.environ["ADMIN_PASSWORD"] = "test-admin-pass-123"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FILE_ENABLED"] = "false"
