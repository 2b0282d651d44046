"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Button labels and callback identifiers
- Templates ending in _MD are MarkdownV2 and already escaped;
  values substituted into them must go through utils.telegram_utils

(Prevents hardcoding across the codebase)
"""

# ============================================================
# MAIN MENU
# ============================================================

BUTTON_CHECK_BALANCE = "🔌 Check Balance"
BUTTON_ACCOUNTS = "👤 Accounts"
BUTTON_SETTINGS = "⚙️ Alert Settings"

MAIN_MENU_ROWS = [
    [BUTTON_CHECK_BALANCE],
    [BUTTON_ACCOUNTS, BUTTON_SETTINGS],
]

START_COMMAND = "/start"

WELCOME_MESSAGE = """👋 Welcome to the campus electricity monitor!

Link your campus card, check your room balance any time, and get an alert before the power runs out.

Use the menu below to get started."""

# ============================================================
# INLINE BUTTONS
# ============================================================

BUTTON_ADD_ACCOUNT = "➕ Add Account"
BUTTON_TOGGLE_ALERT = "🔔 Toggle Alerts"
BUTTON_SET_THRESHOLD = "📉 Change Threshold"
BUTTON_SET_INTERVAL = "⏱️ Change Interval"
BUTTON_UNBIND = "❌ Unbind {account}"

CALLBACK_ADD_ACCOUNT = "add_acc"
CALLBACK_TOGGLE_ALERT = "toggle_alert"
CALLBACK_SET_THRESHOLD = "set_thres"
CALLBACK_SET_INTERVAL = "set_inter"
CALLBACK_UNBIND_PREFIX = "unbind:"

# ============================================================
# ADD ACCOUNT FLOW
# ============================================================

ASK_ACCOUNT_MD = """{progress}
Please enter your *account* \\(student ID or card number\\):"""

ASK_CUSTOMER_CODE_MD = """Received account `{account}`\\.
{progress}
Please enter your *school code \\(customer code\\)*:"""

VERIFYING_MESSAGE = "⏳ Verifying and binding, please wait..."

VERIFY_FAILED_MESSAGE = """❌ Verification failed: {reason}
The binding flow has been cancelled."""

NO_ROOMS_MESSAGE = "❌ No room information found for this account. The binding flow has been cancelled."

ALREADY_BOUND_MESSAGE = "⚠️ This account is already bound."

BIND_SUCCESS_MD = """✅ *Bound successfully\\!*
🏠 Room: {room}
⚡ Current balance: `{balance}`"""

# ============================================================
# ACCOUNT LIST
# ============================================================

ACCOUNTS_HEADER_MD = "📋 *Bound accounts*:\n"
ACCOUNTS_EMPTY_MD = "No accounts bound yet\\.\n"
ACCOUNT_LINE_MD = "\\- `{account}` \\({room}\\)\n"

UNBIND_SUCCESS_NOTICE = "Unbound successfully"
UNBIND_NOT_FOUND_NOTICE = "Binding not found"

# ============================================================
# BALANCE CHECK
# ============================================================

NO_BINDINGS_MESSAGE = "No accounts bound. Please add one under “👤 Accounts” first."

CHECKING_MESSAGE = "🔍 Checking, please wait..."

STATUS_HEADER_MD = "📊 *Electricity status*:\n\n"
STATUS_ROOM_MD = "🏠 *{room}*\n⚡ Balance: `{balance}` kWh\n\n"
STATUS_ERROR_MD = "❌ Account `{account}`: query failed \\({reason}\\)\n"

# ============================================================
# ALERT SETTINGS
# ============================================================

SETTINGS_MD = """⚙️ *Alert Settings*:

📉 Alert threshold: `{threshold}` kWh
🔔 Alerts enabled: `{enabled}`
⏱️ Check interval: `{interval}` minutes"""

SETTINGS_INIT_MESSAGE = "Initializing your settings..."
SETTINGS_UPDATED_NOTICE = "Settings updated"

ASK_THRESHOLD_MD = "Please enter a new *alert threshold* \\(e\\.g\\. 10\\):"
ASK_INTERVAL_MD = "Please enter a new *check interval* \\(minutes, e\\.g\\. 60\\):"

INVALID_NUMBER_MESSAGE = "❌ Invalid input, please enter a number."
INVALID_INTERVAL_MESSAGE = "❌ Invalid input, please enter a whole number greater than 0."

THRESHOLD_UPDATED_MESSAGE = "✅ Threshold updated."
INTERVAL_UPDATED_MESSAGE = "✅ Check interval updated."

# ============================================================
# MONITORING
# ============================================================

LOW_BALANCE_ALERT_MD = """⚠️ *Low balance alert\\!*

🏠 Room: {room}
⚡ Balance: `{balance}` kWh
📉 Threshold: `{threshold}` kWh"""

# ============================================================
# ERRORS
# ============================================================

GENERIC_ERROR_MESSAGE = "❌ Something went wrong. Please send /start to begin again."
