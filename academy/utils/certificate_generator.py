import logging
import os
import re
from io import BytesIO

import arabic_reshaper
import qrcode
from bidi.algorithm import get_display
from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

ARABIC_RE = re.compile(r'[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF]')


def has_arabic(text):
    return bool(text and ARABIC_RE.search(text))


def shape_text(text):
    """
    Prepare text for reportlab, which draws glyphs left to right without shaping.
    Arabic letters are joined into their contextual forms and the line is put in visual order.
    """
    if not has_arabic(text):
        return text
    return get_display(arabic_reshaper.reshape(text))


def resolve_font_path(font_path=None):
    """The configured TTF, else the first installed candidate font with Arabic glyphs."""
    candidates = [font_path] if font_path else []
    candidates += settings.ACADEMY.get('CERTIFICATE_FONT_CANDIDATES', [])
    for path in candidates:
        if path and os.path.exists(path):
            return path
    return None


def _register_font(font_path):
    """Register a TrueType font once per path; None falls back to the built-in fonts."""
    if not font_path:
        return None
    font_name = f"Mastaba-{os.path.splitext(os.path.basename(font_path))[0]}"
    if font_name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(font_name, font_path))
    return font_name


def build_verification_url(code):
    return f"{settings.SITE_URL.rstrip('/')}/api/certificates/{code}/pdf/"


def _qr_image(data):
    qr = qrcode.QRCode(version=1, box_size=4, border=2)
    qr.add_data(data)
    qr.make(fit=True)
    qr_img = qr.make_image(fill_color="black", back_color="white")
    qr_buffer = BytesIO()
    qr_img.save(qr_buffer, format='PNG')
    qr_buffer.seek(0)
    return ImageReader(qr_buffer)


def generate_certificate_pdf(user_name, course_title, issued_date, certificate_code, grade='', verification_url=None,
                             font_path=None):
    """
    Generate a landscape A4 certificate.

    Args:
        user_name: Student name as printed
        course_title: Course title (or the master certificate title)
        issued_date: date the certificate was issued
        certificate_code: Unique human-readable code, printed and encoded in the QR code
        grade: Optional grade line
        verification_url: URL encoded in the QR code; defaults to a text summary
        font_path: Optional TTF used for the name and title; must carry Arabic glyphs for Arabic text

    Returns:
        BytesIO object containing the PDF certificate
    """
    buffer = BytesIO()
    width, height = landscape(A4)

    emerald = colors.HexColor("#064e3b")
    gold = colors.HexColor("#d4a045")
    dark_gray = colors.HexColor("#374151")

    custom_font = _register_font(resolve_font_path(font_path))
    name_font = custom_font or "Times-Bold"
    body_font = custom_font or "Helvetica"
    if custom_font is None and (has_arabic(user_name) or has_arabic(course_title)):
        logger.warning("No Arabic-capable font found for certificate %s; set ACADEMY_CERTIFICATE_FONT_PATH",
                       certificate_code)

    c = canvas.Canvas(buffer, pagesize=landscape(A4))

    # ===== Background and borders =====
    c.setFillColor(colors.HexColor("#fefefe"))
    c.rect(0, 0, width, height, fill=1, stroke=0)

    margin = 30
    c.setStrokeColor(emerald)
    c.setLineWidth(1)
    c.rect(margin, margin, width - 2 * margin, height - 2 * margin)

    inner_margin = 50
    c.setStrokeColor(gold)
    c.setLineWidth(2)
    c.rect(inner_margin, inner_margin, width - 2 * inner_margin, height - 2 * inner_margin)

    # ===== Title =====
    title_y = height - inner_margin - 70
    c.setFont("Helvetica-Bold", 44)
    c.setFillColor(emerald)
    c.drawCentredString(width / 2, title_y, "CERTIFICATE")
    c.setFont("Helvetica", 18)
    c.setFillColor(dark_gray)
    c.drawCentredString(width / 2, title_y - 30, "OF COMPLETION")
    c.setFont("Helvetica", 14)
    c.drawCentredString(width / 2, title_y - 60, "Proudly presented to")

    # ===== Student name =====
    line_length = 420
    line_start_x = (width - line_length) / 2
    name_y = title_y - 120
    c.setFont(name_font, 34)
    c.setFillColor(colors.black)
    c.drawCentredString(width / 2, name_y, shape_text(user_name))
    c.setStrokeColor(colors.black)
    c.setLineWidth(1)
    c.line(line_start_x, name_y - 12, line_start_x + line_length, name_y - 12)

    # ===== Course =====
    course_y = name_y - 60
    c.setFont("Helvetica-Oblique", 12)
    c.setFillColor(dark_gray)
    c.drawCentredString(width / 2, course_y, "for completing the course of")
    course_display = course_title if len(course_title) <= 60 else course_title[:57] + "..."
    c.setFont(name_font, 20)
    c.setFillColor(colors.black)
    c.drawCentredString(width / 2, course_y - 32, shape_text(course_display))
    c.line(line_start_x, course_y - 42, line_start_x + line_length, course_y - 42)

    if grade:
        c.setFont(body_font, 12)
        c.setFillColor(dark_gray)
        c.drawCentredString(width / 2, course_y - 66, shape_text(f"Grade: {grade}"))

    # ===== Footer: date, QR code, code =====
    footer_y = inner_margin + 60
    date_str = issued_date.strftime("%B %d, %Y")
    c.setFont("Helvetica", 10)
    c.setFillColor(dark_gray)
    c.drawString(inner_margin + 20, footer_y, date_str)
    c.line(inner_margin + 20, footer_y - 15, inner_margin + 150, footer_y - 15)

    qr_data = verification_url or (
        f"Certificate: {certificate_code}\nStudent: {user_name}\nCourse: {course_title}\nDate: {date_str}"
    )
    qr_size = 90
    c.drawImage(_qr_image(qr_data), (width - qr_size) / 2, footer_y - qr_size + 20,
                width=qr_size, height=qr_size, preserveAspectRatio=True)

    c.setFont("Helvetica", 10)
    c.drawRightString(width - inner_margin - 20, footer_y, certificate_code)
    c.line(width - inner_margin - 150, footer_y - 15, width - inner_margin - 20, footer_y - 15)

    c.save()
    buffer.seek(0)
    return buffer


def generate_certificate(certificate):
    """Render a stored Certificate."""
    return generate_certificate_pdf(
        user_name=certificate.user_name,
        course_title=certificate.course_title,
        issued_date=certificate.issue_date,
        certificate_code=certificate.code,
        grade=certificate.grade,
        verification_url=build_verification_url(certificate.code),
        font_path=settings.ACADEMY.get('CERTIFICATE_FONT_PATH'),
    )
