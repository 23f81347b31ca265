from foodcourt.schemas.common import ApiModel, Envelope, MessageData, PaginationMeta

__all__ = [
    "ApiModel",
    "Envelope",
    "MessageData",
    "PaginationMeta",
]
