"""
PDF Quote Generator.

Builds the customer-facing quote document for a lead's latest quote draft.
Uses fpdf2 (pure Python, no system dependencies).

Sections, in order:
1. Header: business name, tagline, quote number, date, expiry
2. Customer + Project
3. Line Items
4. Totals (subtotal, contingency, HST, total, deposit)
5. Assumptions & Exclusions
6. Terms

Totals are never read from the stored snapshot: they are recomputed with
compute_totals() from the draft's line items and percentages, the same call the
admin editor and the send-quote email use.
"""

import re
from datetime import datetime, timedelta

from fpdf import FPDF

from .models import PROJECT_TYPE_LABELS
from .quote_totals import CATEGORY_LABELS, compute_totals, format_currency, parse_line_items


def build_quote_number(created_at: datetime, lead_id: str, prefix: str = "RWR") -> str:
    """RWR-<year>-<first 8 chars of the lead id, upper-cased>."""
    year = (created_at or datetime.utcnow()).year
    return f"{prefix}-{year}-{str(lead_id)[:8].upper()}"


def build_pdf_filename(quote_number: str, customer_name: str) -> str:
    safe_name = re.sub(r"[^a-zA-Z0-9]", "-", customer_name or "")
    return f"{quote_number}-Quote-{safe_name}.pdf"


def _fmt_qty(quantity) -> str:
    """Drop trailing zeros: 2, 1.5, 0.25."""
    try:
        return f"{float(quantity):g}"
    except (ValueError, TypeError):
        return "0"


def _fmt_pct(value) -> str:
    """13 -> "13", 12.5 -> "12.5"."""
    return f"{float(value):g}"


def _fmt_date(value) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            value = None
    if not isinstance(value, datetime):
        value = datetime.utcnow()
    return value.strftime("%B %d, %Y")


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        str(text)
        .replace("\u2022", "-")    # bullet
        .replace("\u2014", " - ")  # em dash
        .replace("\u2013", "-")    # en dash
        .replace("\u201c", '"')    # left double quote
        .replace("\u201d", '"')    # right double quote
        .replace("\u2018", "'")    # left single quote
        .replace("\u2019", "'")    # right single quote
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


# Brand red
PRIMARY = (211, 47, 47)
MUTED = (102, 102, 102)


class QuotePDF(FPDF):
    """Custom PDF class for renovation quote documents."""

    def __init__(self, business_name="", business_contact=""):
        super().__init__()
        self.business_name = business_name
        self.business_contact = business_contact
        self.set_auto_page_break(auto=True, margin=25)

    def header(self):
        pass  # Header is drawn once on the first page

    def footer(self):
        self.set_y(-18)
        self.set_draw_color(220, 220, 220)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_font("Helvetica", "", 8)
        self.set_text_color(*MUTED)
        self.cell(0, 6, _safe(f"{self.business_name} | {self.business_contact}"), align="L")
        self.set_x(self.l_margin)
        self.cell(0, 6, f"Page {self.page_no()}/{{nb}}", align="R")
        self.set_text_color(0, 0, 0)

    def section_header(self, title):
        """Uppercase section title with a red rule underneath."""
        self.set_font("Helvetica", "B", 9)
        self.set_text_color(*PRIMARY)
        self.cell(0, 6, title.upper(), new_x="LMARGIN", new_y="NEXT")
        self.set_draw_color(*PRIMARY)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def table_header(self, cols):
        """Render a table header row. cols: [(label, width), ...]"""
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(26, 26, 26)
        self.set_text_color(255, 255, 255)
        for label, width in cols:
            align = "R" if label in ("Qty", "Unit Price", "Total") else "L"
            self.cell(width, 7, label.upper(), fill=True, align=align)
        self.set_text_color(0, 0, 0)
        self.ln()

    def table_row(self, values, widths, shaded=False):
        self.set_font("Helvetica", "", 8)
        self.set_fill_color(248, 248, 248)
        for i, (val, width) in enumerate(zip(values, widths)):
            align = "R" if i in (2, 4, 5) else "L"
            self.cell(width, 6, _safe(str(val)), align=align, fill=shaded)
        self.ln()

    def total_row(self, label, amount, bold=False, color=None):
        self.set_font("Helvetica", "B" if bold else "", 11 if bold else 9)
        if color:
            self.set_text_color(*color)
        self.set_x(self.w - self.r_margin - 90)
        self.cell(55, 6, label, align="L")
        self.cell(35, 6, format_currency(amount), align="R")
        self.set_text_color(0, 0, 0)
        self.ln()


def generate_quote_pdf(lead: dict, quote: dict, business: dict) -> bytes:
    """
    Generate a PDF quote document.

    Args:
        lead: Lead dict (id, name, email, phone, address, city, province,
              postal_code, project_type, area_sqft, finish_level, goals_text)
        quote: QuoteDraft dict (line_items, assumptions, exclusions,
               contingency_percent, tax_percent, deposit_percent,
               validity_days, created_at, expires_at)
        business: {name, tagline, address, phone, email, quote_number_prefix}

    Returns:
        PDF bytes
    """
    line_items = parse_line_items(quote.get("line_items"))
    totals = compute_totals(
        line_items,
        quote.get("contingency_percent") or 0,
        quote.get("tax_percent") or 0,
        quote.get("deposit_percent") or 0,
    )

    business_name = business.get("name") or "Quote"
    contact_parts = [business.get(k) for k in ("address", "phone", "email")]
    business_contact = " | ".join(p for p in contact_parts if p)

    created = quote.get("created_at") or datetime.utcnow()
    if isinstance(created, str):
        try:
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        except ValueError:
            created = datetime.utcnow()
    validity_days = quote.get("validity_days") or 30
    expires = quote.get("expires_at") or created + timedelta(days=validity_days)

    quote_number = build_quote_number(created, lead.get("id", ""), business.get("quote_number_prefix") or "RWR")

    pdf = QuotePDF(business_name=business_name, business_contact=business_contact)
    pdf.alias_nb_pages()
    pdf.add_page()
    pw = pdf.w - pdf.l_margin - pdf.r_margin

    # ── SECTION 1: Header ──
    top = pdf.get_y()
    pdf.set_font("Helvetica", "B", 22)
    pdf.set_text_color(*PRIMARY)
    pdf.cell(pw - 70, 10, _safe(business_name), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(*MUTED)
    pdf.set_font("Helvetica", "", 9)
    if business.get("tagline"):
        pdf.cell(0, 5, _safe(business["tagline"]), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    pdf.set_xy(pdf.w - pdf.r_margin - 70, top)
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(70, 8, "QUOTE", align="R", new_x="LEFT", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    pdf.cell(70, 5, f"# {quote_number}", align="R", new_x="LEFT", new_y="NEXT")
    pdf.cell(70, 5, f"Date: {_fmt_date(created)}", align="R", new_x="LEFT", new_y="NEXT")
    pdf.cell(70, 5, f"Valid until: {_fmt_date(expires)}", align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(8)

    # ── SECTION 2: Customer + Project ──
    pdf.section_header("Prepared For")
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 6, _safe(lead.get("name", "")), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    for detail in (lead.get("email"), lead.get("phone"), lead.get("address")):
        if detail:
            pdf.cell(0, 5, _safe(detail), new_x="LMARGIN", new_y="NEXT")
    if lead.get("city"):
        locality = f"{lead['city']}, {lead.get('province') or ''} {lead.get('postal_code') or ''}"
        pdf.cell(0, 5, _safe(locality.strip()), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    pdf.section_header("Project")
    project_type = lead.get("project_type") or "other"
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 6, PROJECT_TYPE_LABELS.get(project_type, "Renovation Project"), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    if lead.get("area_sqft"):
        pdf.cell(0, 5, f"Area: {lead['area_sqft']:g} sq ft", new_x="LMARGIN", new_y="NEXT")
    if lead.get("finish_level"):
        finish = str(lead["finish_level"])
        pdf.cell(0, 5, f"Finish Level: {finish[:1].upper() + finish[1:]}", new_x="LMARGIN", new_y="NEXT")
    if lead.get("goals_text"):
        pdf.multi_cell(pw, 4.5, _safe(lead["goals_text"][:400]), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── SECTION 3: Line Items ──
    pdf.section_header("Scope of Work")
    cols = [("Description", 70), ("Category", 25), ("Qty", 15), ("Unit", 15), ("Unit Price", 30), ("Total", 35)]
    widths = [c[1] for c in cols]
    pdf.table_header(cols)
    for index, item in enumerate(line_items):
        category = item.category.value
        pdf.table_row(
            [
                item.description[:45],
                CATEGORY_LABELS.get(category, category),
                _fmt_qty(item.quantity),
                item.unit,
                format_currency(item.unit_price),
                format_currency(item.total),
            ],
            widths,
            shaded=index % 2 == 1,
        )
    pdf.ln(4)

    # ── SECTION 4: Totals ──
    pdf.total_row("Subtotal", totals.subtotal)
    if totals.contingency_percent > 0:
        pdf.total_row(f"Contingency ({_fmt_pct(totals.contingency_percent)}%)", totals.contingency_amount)
    pdf.total_row(f"HST ({_fmt_pct(totals.tax_percent)}%)", totals.tax_amount)
    pdf.set_draw_color(220, 220, 220)
    pdf.line(pdf.w - pdf.r_margin - 90, pdf.get_y(), pdf.w - pdf.r_margin, pdf.get_y())
    pdf.total_row("Total", totals.total, bold=True, color=PRIMARY)
    pdf.total_row(f"Deposit Required ({_fmt_pct(totals.deposit_percent)}%)", totals.deposit_required, bold=True, color=PRIMARY)
    pdf.ln(6)

    # ── SECTION 5: Assumptions & Exclusions ──
    for title, entries in (("Assumptions", quote.get("assumptions") or []),
                           ("Exclusions", quote.get("exclusions") or [])):
        if not entries:
            continue
        pdf.section_header(title)
        pdf.set_font("Helvetica", "", 8)
        pdf.set_text_color(*MUTED)
        for entry in entries:
            pdf.set_x(pdf.l_margin)
            pdf.multi_cell(pw, 4.5, _safe(f"  - {entry}"), new_x="LMARGIN", new_y="NEXT")
        pdf.set_text_color(0, 0, 0)
        pdf.ln(3)

    # ── SECTION 6: Terms ──
    pdf.set_font("Helvetica", "I", 8)
    pdf.set_text_color(*MUTED)
    terms = (
        f"This quote is valid for {validity_days} days from the date of issue. "
        f"Prices are subject to change after the expiry date. "
        f"A {_fmt_pct(totals.deposit_percent)}% deposit is required to secure your project start date. "
        f"The remaining balance is due upon completion. All work is subject to a final site "
        f"assessment. {business_name} is fully insured and WSIB compliant."
    )
    pdf.set_x(pdf.l_margin)
    pdf.multi_cell(pw, 4, _safe(terms), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    return bytes(pdf.output())
