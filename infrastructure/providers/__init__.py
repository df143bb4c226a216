from .openexchange import OpenExchangeProvider

__all__ = ['OpenExchangeProvider']
