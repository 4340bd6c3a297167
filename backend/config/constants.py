# backend/config/constants.py

# -----------------------------
# SETTINGS DOCUMENT
# -----------------------------

SETTINGS_DOC_ID = "site"             # single settings document, `cod` nested inside

# -----------------------------
# COD PRICING
# -----------------------------

PRICING_FIXED = "fixed"
PRICING_PERCENTAGE = "percentage"
PRICING_TIERED = "tiered"
PRICING_DYNAMIC = "dynamic"          # alias of percentage

PRICING_TYPES = {PRICING_FIXED, PRICING_PERCENTAGE, PRICING_TIERED, PRICING_DYNAMIC}

STRATEGY_ZONE = "zone"
STRATEGY_COURIER = "courier"

# -----------------------------
# COD DECISION REASONS
# -----------------------------
# code -> shopper facing reason

COD_DISABLED = "COD_DISABLED"
BELOW_MIN_ORDER_VALUE = "BELOW_MIN_ORDER_VALUE"
ABOVE_MAX_ORDER_VALUE = "ABOVE_MAX_ORDER_VALUE"
CATEGORY_EXCLUDED = "CATEGORY_EXCLUDED"
PRODUCT_EXCLUDED = "PRODUCT_EXCLUDED"
PINCODE_EXCLUDED = "PINCODE_EXCLUDED"
STATE_EXCLUDED = "STATE_EXCLUDED"
OUTSIDE_ALLOWED_DAYS = "OUTSIDE_ALLOWED_DAYS"
OUTSIDE_ALLOWED_HOURS = "OUTSIDE_ALLOWED_HOURS"
NO_MATCHING_TIER = "NO_MATCHING_TIER"

COD_REASONS = {
    COD_DISABLED: "COD disabled",
    BELOW_MIN_ORDER_VALUE: "order below minimum value",
    ABOVE_MAX_ORDER_VALUE: "order exceeds maximum value",
    CATEGORY_EXCLUDED: "category excluded",
    PRODUCT_EXCLUDED: "product excluded",
    PINCODE_EXCLUDED: "pincode excluded",
    STATE_EXCLUDED: "state excluded",
    OUTSIDE_ALLOWED_DAYS: "outside allowed days",
    OUTSIDE_ALLOWED_HOURS: "outside allowed hours",
    NO_MATCHING_TIER: "no pricing tier matches order value",
}

# -----------------------------
# RATE LIMITS
# -----------------------------

COD_CHECK_WINDOW_SECONDS = 60
COD_ORDER_MAX_REQUESTS = 5
