TELEGRAM_API_BASE_URL = "https://api.telegram.org"
TELEGRAM_REQUEST_TIMEOUT_SECONDS = 30.0
TELEGRAM_CALLBACK_DATA_LIMIT = 64

CHAT_ACTION_TYPING = "typing"

LOCATION_LIVE_PERIOD_SECONDS = 60

BUTTON_YES = "Yes"
BUTTON_CANCEL = "Cancel"

MESSAGE_CONFIRM_REBOOT = "Really reboot?"
MESSAGE_CONFIRM_SHUTDOWN = "Really shutdown?"
MESSAGE_HELP = """Usage:

/status  : Show current status of your Raspberry Pi.
/where   : Show current location of your Raspberry Pi. (based on external IP)
/reboot  : Reboot your Raspberry Pi.
/shutdown: Shutdown your Raspberry Pi.
/help    : Show this help message.
"""
