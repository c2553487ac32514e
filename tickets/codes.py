import base64
import io
import logging
import re
import secrets

import qrcode
from django.conf import settings
from django.urls import reverse

from .exceptions import CodeExhaustedError, DuplicateCodeError, MalformedCodeError

logger = logging.getLogger('tickets')

CODE_MAX_LENGTH = 64
CODE_RE = re.compile(r'^[A-Z0-9][A-Z0-9-]*$')

# Цвета QR как на печатном билете
QR_DARK = "#0A0E35"
QR_LIGHT = "#FFFFFF"


def generate_ticket_code(event_id) -> str:
    """
    Код билета вида PREFIX-{event_id}-{TOKEN}.
    TOKEN берётся из secrets, поэтому соседние коды не выводятся друг из друга.
    """
    token = secrets.token_hex(settings.TICKET_CODE_TOKEN_BYTES).upper()
    return f"{settings.TICKET_CODE_PREFIX.upper()}-{event_id}-{token}"


def normalize_code(raw) -> str:
    # код вводят руками на входе: убираем пробелы и приводим к верхнему регистру
    code = (raw or '').strip().upper()
    if not code or len(code) > CODE_MAX_LENGTH or not CODE_RE.match(code):
        raise MalformedCodeError(f"Malformed ticket code: {raw!r}")
    return code


class CodeGenerator:
    """
    Выдаёт код и сразу закрепляет его в хранилище.

    Уникальность гарантирует хранилище: persist(code) бросает DuplicateCodeError,
    если такой код уже есть. Тогда генерируем новый, но не больше max_attempts раз.
    """

    def __init__(self, max_attempts=None, generate=generate_ticket_code):
        self.max_attempts = max_attempts or settings.TICKET_CODE_MAX_ATTEMPTS
        self._generate = generate

    def issue_code(self, event_id, persist):
        for attempt in range(1, self.max_attempts + 1):
            code = self._generate(event_id)
            try:
                return persist(code)
            except DuplicateCodeError:
                logger.warning("Ticket code collision: event=%s attempt=%s", event_id, attempt)
        logger.error("Ticket code space exhausted: event=%s attempts=%s", event_id, self.max_attempts)
        raise CodeExhaustedError(
            f"Could not allocate a unique ticket code for event {event_id} "
            f"after {self.max_attempts} attempts"
        )


def build_verification_url(code: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}{reverse('tickets:verify', args=[code])}"


def build_qr_png(code: str, box_size: int = 8, border: int = 2) -> bytes:
    """PNG с QR-кодом ссылки проверки. Одинаковый код даёт одинаковые байты."""
    qr = qrcode.QRCode(version=None, box_size=box_size, border=border)
    qr.add_data(build_verification_url(code))
    qr.make(fit=True)

    qr_img = qr.make_image(fill_color=QR_DARK, back_color=QR_LIGHT).get_image()
    buffer = io.BytesIO()
    qr_img.save(buffer, format="PNG")
    return buffer.getvalue()


def build_qr_data_url(code: str) -> str:
    encoded = base64.b64encode(build_qr_png(code)).decode('ascii')
    return f"data:image/png;base64,{encoded}"
