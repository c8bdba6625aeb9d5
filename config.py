import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "interior-design")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "secret-key-change-me")
JWT_ALG = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))  # 7 days
ENCRYPTION_SECRET = os.getenv("ENCRYPTION_SECRET") or JWT_SECRET

# CORS
DEFAULT_ORIGINS = [
    "https://beyondblueprint.co.in",
    "https://www.beyondblueprint.co.in",
    "https://admin.beyondblueprint.co.in",
    "https://api.beyondblueprint.co.in",
]
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()] or DEFAULT_ORIGINS
LOCALHOST_ORIGIN_REGEX = r"^http://localhost:\d+$"

# Rate limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "15"))  # minutes
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "100"))
AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "50/15minutes")

# Mail
EMAIL_HOST = os.getenv("EMAIL_HOST")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASS = os.getenv("EMAIL_PASS")

# Google Sheets
GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID")
GOOGLE_CREDENTIALS_FILE = os.getenv("GOOGLE_CREDENTIALS_FILE", os.path.join(BASE_DIR, "google-credentials.json"))

# Cloudinary
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "admin_uploads")

# Uploads
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(20 * 1024 * 1024)))  # 20MB
MAX_FILES = 20
UPLOAD_TMP_DIR = os.getenv("UPLOAD_TMP_DIR", os.path.join(os.getcwd(), "uploads", "tmp"))

# Flat JSON files for the public site
DATA_DIR = os.getenv("DATA_DIR", os.path.join(BASE_DIR, "data"))

SITE_URL = os.getenv("SITE_URL", "http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "5000"))
