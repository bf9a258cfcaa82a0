from linkshortener.models.short_url_model import ClickModel, OwnerKind, ShortURLModel


__all__ = [
    'ClickModel',
    'OwnerKind',
    'ShortURLModel',
]
