import json
import logging

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from .codes import normalize_code
from .exceptions import MalformedCodeError, NotFoundError, StoreUnavailableError
from .services import VerificationService
from .store import TicketStore
from .utils import build_ticket_pdf

logger = logging.getLogger('tickets')


def _bad_request(message):
    return JsonResponse({'error': message}, status=400)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def verify_ticket(request, code):
    """
    GET: проверка статуса без изменений.
    POST: попытка прохода: {"verifiedBy": "..."}; действительный билет гасится.
    """
    try:
        code = normalize_code(code)
    except MalformedCodeError:
        return _bad_request("Malformed ticket code")

    service = VerificationService(TicketStore())

    if request.method == 'GET':
        result = service.check(code)
        return JsonResponse(result.as_dict(), status=result.http_status)

    try:
        payload = json.loads(request.body.decode('utf-8') or '{}')
    except (UnicodeDecodeError, ValueError):
        return _bad_request("Bad JSON")
    if not isinstance(payload, dict):
        return _bad_request("Bad JSON")

    try:
        result = service.verify(code, payload.get('verifiedBy'))
    except ValueError:
        return _bad_request("verifiedBy is required")
    return JsonResponse(result.as_dict(), status=result.http_status)


@require_GET
def ticket_pdf(request, code):
    # Скачать билет может тот, у кого есть код: код и есть пропуск
    try:
        ticket = TicketStore().get_by_code(normalize_code(code))
    except MalformedCodeError:
        return _bad_request("Malformed ticket code")
    except NotFoundError:
        return JsonResponse({'error': 'Ticket not found'}, status=404)
    except StoreUnavailableError:
        return JsonResponse({'error': 'Try again later'}, status=503)

    pdf_bytes = build_ticket_pdf(ticket)
    filename = f"ticket-{ticket.code}.pdf"

    response = HttpResponse(pdf_bytes, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response
