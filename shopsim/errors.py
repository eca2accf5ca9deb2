# shopsim/errors.py


class ShopSimError(Exception):
    """Base class for caller mistakes. Game-rule rejections never raise."""


class InvalidAction(ShopSimError):
    """Unknown action type or a payload that does not fit it."""


class InvalidOption(ShopSimError):
    """Event response naming an option the event does not have."""
