from editsync.infrastructure.mail.notifier import Notifier, SmtpNotifier, get_notifier

__all__ = ["Notifier", "SmtpNotifier", "get_notifier"]
