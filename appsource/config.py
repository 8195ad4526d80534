"""
App Source Configuration

All settings come from environment variables so the same build can run
as an API service or from the command line. The admin API key is read per
request in catalog.admin.
"""

import os

DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("APPSOURCE_DOWNLOAD_TIMEOUT", "60"))
DOWNLOAD_CHUNK_SIZE = int(os.getenv("APPSOURCE_DOWNLOAD_CHUNK_SIZE", str(1024 * 1024)))
VERIFY_CONCURRENCY = int(os.getenv("APPSOURCE_VERIFY_CONCURRENCY", "4"))
LOG_LEVEL = os.getenv("APPSOURCE_LOG_LEVEL", "INFO")
