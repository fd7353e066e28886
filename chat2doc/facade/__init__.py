from chat2doc.facade.core import Chat2Doc

__all__ = ["Chat2Doc"]
