"""
Test suite for the Hospital Registration Service.

Contains unit and integration tests for admission, assignment, the
registration lifecycle, milestones and the HTTP API.
"""
import os
import tempfile

# Set environment for testing
os.environ["TESTING"] = "1"
os.environ.setdefault(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.gettempdir(), 'hospital_registration_test.db')}"
)
