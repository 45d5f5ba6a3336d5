from enum import Enum


class PaymentMode(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "Net Banking"
    CHEQUE = "Cheque"


class FeeStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partially paid"
    paid = "paid"


class DialogKind(str, Enum):
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    VIEW = "view"


class DialogState(str, Enum):
    CLOSED = "closed"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_ERROR = "load-error"
    SUBMITTING = "submitting"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
