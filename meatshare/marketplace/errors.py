# meatshare/marketplace/errors.py


# -----------------------------------------------------
# Domain Errors
# -----------------------------------------------------
class MarketplaceError(Exception):
    pass


class ShareNotFoundError(MarketplaceError):
    pass


class ShareSoldOutError(MarketplaceError):
    pass


class InvalidShareError(MarketplaceError):
    pass


class FarmNotPayableError(MarketplaceError):
    """The farm has no usable Stripe connected account."""


class SharesGateClosedError(MarketplaceError):
    """Share creation attempted before Stripe onboarding finished."""


class PurchaseNotFoundError(MarketplaceError):
    pass


class PurchaseAccessDeniedError(MarketplaceError):
    pass
