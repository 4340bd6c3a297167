import os
from dotenv import load_dotenv

load_dotenv()

# =====================================================
# ENV
# =====================================================
ENV = os.getenv("ENV", "development")

# =====================================================
# DATABASE
# =====================================================
MONGO_URI = os.getenv("MONGO_URI") or os.getenv("MONGODB_URI")

# =====================================================
# JWT
# =====================================================
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# =====================================================
# COD
# =====================================================
COD_TIMEZONE = os.getenv("COD_TIMEZONE", "Asia/Kolkata")
COD_CHECK_RATE_LIMIT = int(os.getenv("COD_CHECK_RATE_LIMIT", 30))

# =====================================================
# STORE (public projection)
# =====================================================
STORE_NAME = os.getenv("STORE_NAME", "Arister")
STORE_CURRENCY = os.getenv("STORE_CURRENCY", "INR")
STORE_SUPPORT_EMAIL = os.getenv("STORE_SUPPORT_EMAIL")

# =====================================================
# AUDIT
# =====================================================
AUDIT_RETENTION_DAYS = int(os.getenv("AUDIT_RETENTION_DAYS", 90))

# =====================================================
# CORS
# =====================================================
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")


def validate_production_env() -> None:
    if (ENV or "").lower() != "production":
        return

    required = {
        "JWT_SECRET": JWT_SECRET,
        "MONGODB_URI": MONGO_URI,
    }

    invalid = []
    for key, value in required.items():
        val = (value or "").strip()
        if not val or val.startswith("CHANGE_THIS"):
            invalid.append(key)

    if invalid:
        raise RuntimeError(f"Production env misconfigured. Invalid keys: {', '.join(sorted(invalid))}")
