# Overview: Service-layer operations for punch notifications; SMTP with a short timeout, never raises.

from __future__ import annotations

import smtplib
from email.message import EmailMessage

from flask import current_app

from ..time_utils import to_iso


PUNCH_LABELS = {
    "entry": "Clock-in",
    "lunch_exit": "Lunch start",
    "lunch_return": "Lunch return",
    "exit": "Clock-out",
}

PUNCH_FIELDS = {
    "entry": "entry_time",
    "lunch_exit": "lunch_exit_time",
    "lunch_return": "lunch_return_time",
    "exit": "exit_time",
}


def build_punch_message(employee, record, punch_type: str) -> EmailMessage:
    label = PUNCH_LABELS.get(punch_type, punch_type)
    punched_at = to_iso(getattr(record, PUNCH_FIELDS.get(punch_type, ""), None))

    lines = [
        f"Hello {employee.name},",
        "",
        f"{label} recorded for {record.date} at {punched_at}.",
    ]
    if punch_type == "entry" and record.late_minutes:
        lines.append(f"Late arrival: {record.late_minutes} minutes.")
    if punch_type == "lunch_return" and record.lunch_late_minutes:
        lines.append(f"Late lunch return: {record.lunch_late_minutes} minutes.")
    if punch_type == "exit" and record.total_worked_hours is not None:
        lines.append(f"Worked: {record.total_worked_hours:.2f}h of {record.scheduled_hours:.2f}h scheduled.")
        if record.overtime_hours:
            lines.append(f"Overtime: {record.overtime_hours:.2f}h (pending approval).")
        if record.negative_hours:
            lines.append(f"Shortfall: {record.negative_hours:.2f}h (pending approval).")

    msg = EmailMessage()
    msg["Subject"] = f"{label} registered - {record.date}"
    msg["From"] = current_app.config.get("MAIL_SENDER", "timebank@localhost")
    msg["To"] = employee.email
    msg.set_content("\n".join(lines))
    return msg


def notify_punch(employee, record, punch_type: str) -> bool:
    """
    Send a punch receipt to the employee.

    Returns True when a message was handed to the SMTP server. Failures are
    logged and swallowed.
    """
    config = current_app.config
    try:
        msg = build_punch_message(employee, record, punch_type)
        if not config.get("MAIL_ENABLED"):
            current_app.logger.debug("Mail disabled; skipping %s receipt for employee %s", punch_type, employee.id)
            return False

        with smtplib.SMTP(
            config.get("MAIL_SERVER", "localhost"),
            config.get("MAIL_PORT", 25),
            timeout=config.get("MAIL_TIMEOUT", 5),
        ) as smtp:
            if config.get("MAIL_USE_TLS"):
                smtp.starttls()
            if config.get("MAIL_USERNAME"):
                smtp.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
            smtp.send_message(msg)
        return True
    except Exception:
        current_app.logger.warning(
            "Punch notification failed for employee %s (%s)", employee.id, punch_type, exc_info=True
        )
        return False
