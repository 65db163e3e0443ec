CACHE_SYSTEM_SETTINGS = "system_settings"
CACHE_DEFAULT_SESSION_YEAR = "default_session_year"
CACHE_TIMEOUT = 60 * 60

DEMO_ERROR_CODE = 112
DEMO_ERROR_MESSAGE = "This is not allowed in the Demo Version."
GENERIC_ERROR_MESSAGE = "Oops! Something went wrong. Please try again."

SUPER_ADMIN_NAME_SETTING = "super_admin_name"
