"""
Quote emails.

render_quote_email() builds the subject and HTML/plain bodies from the same
compute_totals() figures printed on the PDF; send_quote_email() delivers it over
SMTP (Resend's relay by default: the API key is the SMTP password).
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from html import escape

from .config import business_profile, settings
from .models import PROJECT_TYPE_SHORT_LABELS
from .quote_totals import QuoteTotals, format_currency

logger = logging.getLogger("renoquote.email")


class EmailNotConfigured(Exception):
    """RESEND_API_KEY / SMTP credentials missing."""


class EmailSendError(Exception):
    """SMTP server refused or dropped the message."""


def build_subject(project_type, quote_number: str, business_name: str) -> str:
    label = PROJECT_TYPE_SHORT_LABELS.get(project_type or "other", "Renovation")
    return f"Your {label} Quote from {business_name} - {quote_number}"


def render_quote_email(
    lead: dict,
    quote: dict,
    totals: QuoteTotals,
    custom_message: str = None,
    quote_number: str = "",
    business: dict = None,
) -> tuple[str, str, str]:
    """Returns (subject, html_body, text_body)."""
    business = business or business_profile()
    first_name = (lead.get("name") or "there").split()[0]
    validity_days = quote.get("validity_days") or 30
    subject = build_subject(lead.get("project_type"), quote_number, business["name"])

    summary_rows = [
        ("Subtotal", format_currency(totals.subtotal)),
    ]
    if totals.contingency_amount > 0:
        summary_rows.append((f"Contingency ({float(totals.contingency_percent):g}%)",
                             format_currency(totals.contingency_amount)))
    summary_rows += [
        (f"HST ({float(totals.tax_percent):g}%)", format_currency(totals.tax_amount)),
        ("Total", format_currency(totals.total)),
        (f"Deposit Required ({float(totals.deposit_percent):g}%)",
         format_currency(totals.deposit_required)),
    ]

    # Plain text
    text_lines = [f"Hi {first_name},", ""]
    if custom_message:
        text_lines += [custom_message, ""]
    text_lines += [
        f"Thank you for considering {business['name']} for your project. "
        f"Your quote {quote_number} is attached as a PDF.",
        "",
    ]
    text_lines += [f"{label}: {amount}" for label, amount in summary_rows]
    text_lines += [
        "",
        f"This quote is valid for {validity_days} days. Reply to this email or call "
        f"{business.get('phone') or 'us'} with any questions.",
        "",
        business["name"],
        business.get("address") or "",
    ]
    text_body = "\n".join(text_lines)

    # HTML
    rows_html = "".join(
        f'<tr><td style="padding:4px 12px 4px 0">{escape(label)}</td>'
        f'<td style="padding:4px 0;text-align:right"><strong>{escape(amount)}</strong></td></tr>'
        for label, amount in summary_rows
    )
    message_html = (
        f'<p style="padding:12px;background:#f5f5f5;border-left:3px solid #D32F2F">'
        f"{escape(custom_message)}</p>"
        if custom_message else ""
    )
    html_body = (
        '<div style="font-family:Helvetica,Arial,sans-serif;color:#222;max-width:600px">'
        f'<h2 style="color:#D32F2F;margin-bottom:0">{escape(business["name"])}</h2>'
        f'<p style="color:#666;margin-top:4px">{escape(business.get("tagline") or "")}</p>'
        f"<p>Hi {escape(first_name)},</p>"
        f"{message_html}"
        f"<p>Thank you for considering {escape(business['name'])} for your project. "
        f"Your quote <strong>{escape(quote_number)}</strong> is attached as a PDF.</p>"
        f'<table style="border-collapse:collapse">{rows_html}</table>'
        f"<p>This quote is valid for {validity_days} days. Reply to this email or call "
        f"{escape(business.get('phone') or 'us')} with any questions.</p>"
        f'<p style="color:#666;font-size:12px">{escape(business["name"])} &middot; '
        f"{escape(business.get('address') or '')}</p>"
        "</div>"
    )
    return subject, html_body, text_body


def send_quote_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: str,
    attachment: bytes,
    filename: str,
) -> str:
    """Send via STARTTLS SMTP with the PDF attached. Returns the Message-ID."""
    if not settings.RESEND_API_KEY:
        raise EmailNotConfigured("Email service not configured")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.FROM_EMAIL
    msg["To"] = to_email
    msg["Reply-To"] = settings.REPLY_TO_EMAIL
    msg["Message-ID"] = make_msgid(domain=settings.FROM_EMAIL.rsplit("@", 1)[-1].strip(">"))
    msg.set_content(text_body)
    msg.add_alternative(html_body, subtype="html")
    msg.add_attachment(attachment, maintype="application", subtype="pdf", filename=filename)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            server.login(settings.SMTP_USERNAME, settings.RESEND_API_KEY)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send quote email to %s: %s", to_email, e)
        raise EmailSendError(str(e)) from e

    logger.info("Quote email sent to %s (%s)", to_email, msg["Message-ID"])
    return msg["Message-ID"]
