"""Notification exceptions"""


class EmailConfigurationError(Exception):
    """Email delivery is not configured (no RESEND_API_KEY)"""
    pass


class EmailDeliveryError(Exception):
    """The email provider rejected or failed to accept a message"""
    pass
