import io
from django.conf import settings
from django.utils import timezone

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader

from .codes import build_qr_png, build_verification_url

_FONT_REGULAR = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


def _format_dt(dt):
    if not dt:
        return ""
    dt = timezone.localtime(dt)
    return dt.strftime("%d.%m.%Y %H:%M")


def build_ticket_pdf(ticket):
    """
    Генерирует PDF-билет с QR-кодом и основными реквизитами.
    Возвращает bytes.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    margin_left = 20 * mm
    margin_top = height - 20 * mm

    # Заголовок
    c.setFont(_FONT_BOLD, 20)
    c.drawString(margin_left, margin_top, f"{settings.SITE_NAME} e-ticket")

    # Событие
    event = ticket.event
    y = margin_top - 15 * mm
    c.setFont(_FONT_BOLD, 14)
    c.drawString(margin_left, y, event.title)
    y -= 7 * mm

    c.setFont(_FONT_REGULAR, 11)
    c.drawString(margin_left, y, f"Date: {_format_dt(event.starts_at)}")
    y -= 6 * mm
    if event.duration_minutes:
        c.drawString(margin_left, y, f"Duration: ~{event.duration_minutes} min")
        y -= 6 * mm
    c.drawString(margin_left, y, f"Location: {event.location}")
    y -= 10 * mm

    # Детали билета
    c.setFont(_FONT_BOLD, 12)
    c.drawString(margin_left, y, "Ticket")
    y -= 7 * mm

    c.setFont(_FONT_REGULAR, 11)
    c.drawString(margin_left, y, f"Code: {ticket.code}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Order: {ticket.order_id}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Holder: {ticket.owner_email}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Price: {ticket.price}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Status: {ticket.get_status_display()}")

    # QR-код со ссылкой проверки
    qr_size = 50 * mm
    c.drawImage(
        ImageReader(io.BytesIO(build_qr_png(ticket.code))),
        width - qr_size - 20 * mm,
        margin_top - qr_size,
        qr_size,
        qr_size,
        mask='auto'
    )

    # Подвал
    c.setFont(_FONT_REGULAR, 9)
    footer_y = 15 * mm
    c.drawString(margin_left, footer_y, "Show the QR code at the entrance. One code admits one person.")
    c.drawString(margin_left, footer_y - 5 * mm, build_verification_url(ticket.code))

    c.showPage()
    c.save()
    pdf = buffer.getvalue()
    buffer.close()
    return pdf
