"""Core constants: cache key prefixes and shared literal values.

Single source of truth for cache key structure (DRY). Used by the
memoization cache and the services that invalidate it.
"""

# Cache key prefixes
CACHE_PREFIX_SEARCH = "search"
CACHE_PREFIX_RECOMMENDATIONS = "recommendations"
CACHE_PREFIX_ACCESS_TOKEN = "access_token"
CACHE_PREFIX_JWKS = "jwks"
CACHE_PREFIX_LTI_STATE = "lti_state"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Search pagination
DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100

# API key format
API_KEY_PREFIX = "edp_"
API_KEY_DISPLAY_PREFIX_LENGTH = 12

# Webhook signature headers
WEBHOOK_SIGNATURE_HEADER = "X-Webhook-Signature-256"
HEYGEN_SIGNATURE_HEADER = "Signature"
STRIPE_SIGNATURE_HEADER = "Stripe-Signature"
ADMIN_SECRET_HEADER = "X-Admin-Secret"
