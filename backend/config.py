from pathlib import Path
from dotenv import load_dotenv
import os

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.environ.get("DB_NAME", "stitchflow")
TRAINING_MODE = os.environ.get("TRAINING_MODE", "false").lower() == "true"

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

# Shopify store used for order pull/push
SHOPIFY_STORE_URL = os.environ.get("SHOPIFY_STORE_URL", "")
SHOPIFY_ACCESS_TOKEN = os.environ.get("SHOPIFY_ACCESS_TOKEN", "")
SHOPIFY_API_VERSION = os.environ.get("SHOPIFY_API_VERSION", "2025-01")
SHOPIFY_WEBHOOK_SECRET = os.environ.get("SHOPIFY_WEBHOOK_SECRET", "")

# Firebase Auth (email/password sign-in)
FIREBASE_API_KEY = os.environ.get("FIREBASE_API_KEY", "")

SESSION_DAYS = int(os.environ.get("SESSION_DAYS", "7"))
LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
