import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Upstream price service
STOCK_API_BASE_URL = os.getenv("STOCK_API_BASE_URL", "http://20.244.56.144/evaluation-service")
STOCK_API_TOKEN = os.getenv("STOCK_API_TOKEN")  # Optional bearer token for the upstream
STOCK_CLIENT_TIMEOUT = float(os.getenv("STOCK_CLIENT_TIMEOUT", 10))
FORWARD_MINUTES_UPSTREAM = os.getenv("FORWARD_MINUTES_UPSTREAM", "false").lower() in ("true", "1", "t")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 9876))

# Logging
LOG_FILE = os.getenv("LOG_FILE", "stock_service.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
