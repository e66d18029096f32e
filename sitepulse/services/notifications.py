import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from sitepulse.core.config import SmtpConfig

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Notification sink that delivers HTML alerts over SMTP."""

    def __init__(self, config: SmtpConfig):
        self.config = config

    def can_send(self) -> bool:
        """True only if SMTP is configured well enough to attempt sending."""
        return self.config.is_configured

    def send(self, to_email: str, subject: str, html: str) -> bool:
        if not self.can_send():
            logger.warning("SMTP not configured, dropping alert to %s", to_email)
            return False

        cfg = self.config
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((cfg.from_name, cfg.from_email))
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))

        context = ssl.create_default_context()
        try:
            if cfg.use_ssl:
                # Implicit TLS (usually port 465)
                with smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout, context=context) as server:
                    server.login(cfg.user, cfg.password)
                    server.sendmail(cfg.from_email, [to_email], msg.as_string())
            else:
                # STARTTLS (usually port 587)
                with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as server:
                    server.ehlo()
                    server.starttls(context=context)
                    server.ehlo()
                    server.login(cfg.user, cfg.password)
                    server.sendmail(cfg.from_email, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False
        return True
