import os
from dotenv import load_dotenv

load_dotenv()

# --- Supabase Configuration ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

# Storage bucket for invoice scans
INVOICE_BUCKET = os.getenv("INVOICE_BUCKET", "invoice-documents")

# --- Gemini ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_FLASH_MODEL = os.getenv("GEMINI_FLASH_MODEL", "gemini-1.5-flash")
GEMINI_PRO_MODEL = os.getenv("GEMINI_PRO_MODEL", "gemini-1.5-pro")
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "30"))

# --- Clerk (identity provider) ---
CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY", "")
# PEM public key used to verify Clerk session tokens (RS256)
CLERK_JWT_KEY = os.getenv("CLERK_JWT_KEY", "").replace("\\n", "\n")
CLERK_JWT_ALGORITHM = "RS256"
CLERK_API_URL = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1").rstrip("/")
CLERK_SUPABASE_TEMPLATE = os.getenv("CLERK_SUPABASE_TEMPLATE", "supabase")

# --- Budgets ---
DEFAULT_ALERT_THRESHOLD = float(os.getenv("DEFAULT_ALERT_THRESHOLD", "80"))

# --- App ---
APP_NAME = os.getenv("APP_NAME", "FinanceTracker Pro")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
