"""
Plain-text email report of a sync run
"""

import logging
import smtplib
from datetime import date
from email.mime.text import MIMEText
from typing import List, Optional

from .config import SmtpConfig
from .models import ReportFailure, SyncReport

logger = logging.getLogger(__name__)

EMPTY_SECTION = '(none)'
SMTP_TIMEOUT = 30


def _section(heading: str, titles: List[str]) -> str:
    body = '\n'.join(sorted(titles)) if titles else EMPTY_SECTION
    return f"{heading}:\n{body}"


def format_report(report: SyncReport) -> str:
    return '\n\n'.join([
        _section('Created', report.created),
        _section('Updated', report.updated),
        _section('Deleted', report.deleted),
    ]) + '\n'


def send_report(report: SyncReport, recipient: str, smtp: SmtpConfig,
                today: Optional[date] = None) -> bool:
    """Email the report; returns False when nothing was sent"""
    if not recipient:
        logger.debug("No report recipient configured, skipping report")
        return False

    today = today or date.today()
    msg = MIMEText(format_report(report))
    msg['Subject'] = f"Anniversary sync report {today.isoformat()}"
    msg['From'] = smtp.sender or recipient
    msg['To'] = recipient

    try:
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=SMTP_TIMEOUT)
        try:
            if smtp.use_tls:
                server.starttls()
            if smtp.username:
                server.login(smtp.username, smtp.password)
            server.sendmail(msg['From'], [recipient], msg.as_string())
        finally:
            server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.error(str(ReportFailure(f"Could not send report to {recipient}: {e}")))
        return False

    logger.info(f"Report sent to {recipient}")
    return True
