import os

# Set test environment variables before importing any application code
os.environ.update(
    {
        "CLINIC_ENVIRONMENT": "test",
        "CLINIC_LOG_LEVEL": "DEBUG",
    }
)
