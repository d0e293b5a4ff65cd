"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages returned by the account handlers
- Reset email template
- Field limits

(Prevents hardcoding across the codebase)
"""

# ============================================================
# FIELD LIMITS
# ============================================================

NAME_MAX_LENGTH = 30
RESET_TOKEN_BYTES = 20

# ============================================================
# AUTHENTICATION
# ============================================================

MISSING_CREDENTIALS_MESSAGE = "Please Enter all the details"
INVALID_CREDENTIALS_MESSAGE = "Invalid details"
LOGGED_OUT_MESSAGE = "Logged Out"
LOGIN_REQUIRED_MESSAGE = "Please Login to access this resource"
ROLE_NOT_ALLOWED_MESSAGE = "Role: {role} is not allowed to access this resource"

# ============================================================
# PASSWORD RESET
# ============================================================

USER_NOT_FOUND_MESSAGE = "User not found"
RESET_EMAIL_SENT_MESSAGE = "Email sent to {email} successfully"
RESET_TOKEN_INVALID_MESSAGE = "Reset Password Token is invalid or has been expired"
PASSWORD_MISMATCH_MESSAGE = "Password does not match"
OLD_PASSWORD_INCORRECT_MESSAGE = "Old password is incorrect"

RESET_EMAIL_TEMPLATE = (
    "Your password reset token is :- \n\n {reset_url} \n\n "
    "If you have not requested this email then please ignore it"
)

# ============================================================
# PROFILE & ADMIN
# ============================================================

PROFILE_UPDATED_MESSAGE = "Profile updated successfully"
USER_DOES_NOT_EXIST_MESSAGE = "User does not exist with Id: {user_id}"
ROLE_UPDATED_MESSAGE = "Role updated successfully"
USER_DELETED_MESSAGE = "User deleted successfully"
