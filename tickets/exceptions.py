class TicketError(Exception):
    pass


class NotFoundError(TicketError):
    """Код или билет не найден. Для сканера это исход invalid."""


class ConflictError(TicketError):
    """Compare-and-set проиграл гонку: статус уже поменял кто-то другой."""


class DuplicateCodeError(TicketError):
    pass


class CodeExhaustedError(TicketError):
    """Генератор так и не смог получить свободный код за отведённые попытки."""


class InvalidTransitionError(TicketError):
    """Переход из конечного статуса или переход, которого нет в автомате."""


class StoreUnavailableError(TicketError):
    """Хранилище недоступно или не ответило вовремя. Это не invalid."""


class InvalidPaymentEventError(TicketError):
    pass


class MalformedCodeError(TicketError):
    pass
