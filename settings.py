from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("LOG_LEVEL", "info")
DEBUG_LOG_FILE = config.get("DEBUG_LOG_FILE", "session_debug.log")

# Taskboard API (the Authentication Service lives under /auth)
API_BASE_URL = config.get("TASKBOARD_API_URL", "http://localhost:4000/api")

# Authentication Service endpoint paths (relative to API_BASE_URL)
LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
REFRESH_PATH = "/auth/refresh-token"
ME_PATH = "/auth/me"
VERIFY_OTP_PATH = "/auth/verify-otp"
RESEND_OTP_PATH = "/auth/resend-otp"
FORGOT_PASSWORD_PATH = "/auth/forgot-password"
RESET_PASSWORD_PATH = "/auth/reset-password"

# Refresh this many seconds before the access token's exp claim
REFRESH_SKEW_SECONDS = config.get("REFRESH_SKEW_SECONDS", 300)

# Timeout configuration
# Request timeout: total budget for one exchange with the API
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 10.0)
# Connection timeout: time to establish the TCP connection
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 5.0)

# Token storage
TOKEN_FILE = config.get("TOKEN_FILE", str(Path.home() / ".taskboard-session" / "tokens.json"))
