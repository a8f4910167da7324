"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The ledger and inventory core sits between the screens and a remote REST
backend. Callers need to tell a failed read apart from a failed write, and
a missing catalog item apart from a malformed request, without parsing
message strings:

    try:
        adjuster.apply_on_sale(line_items, transaction_id="INV-1")
    except UpdateError as e:            # Typed catch
        show_error(e.resource, e.reason)
    except ValidationError as e:
        highlight_field(e.field)

Every exception has a CODE class attribute (machine-readable) and keeps its
context as attributes (not just a message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- BackendError
    |   +-- FetchError             read from the backend failed
    |   +-- UpdateError            write to the backend failed
    |
    +-- InventoryError
    |   +-- LookupMissError        item referenced by name not in catalog
    |   +-- UniversalItemError     universal item cannot be deleted/renamed
    |   +-- DuplicateItemError     product name already in use
    |
    +-- ValidationError            malformed input
    |
    +-- ConfigurationError         invalid settings

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Backend         | FETCH_FAILED                | Network/HTTP/envelope/decoding failure on read
                | UPDATE_FAILED               | Network/HTTP/envelope failure on write
----------------|-----------------------------|-----------------------------------------
Inventory       | ITEM_NOT_FOUND              | No catalog item with the exact name
                | UNIVERSAL_ITEM_PROTECTED    | Delete/rename attempted on Bardana
                | DUPLICATE_ITEM              | Product name exists (case-insensitive)
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Bad line item, negative stock, etc.
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_INVALID       | Unparseable setting value

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Per-item inventory loops catch BackendError and LookupMissError, record
   an outcome for the item and continue with the next one.

2. Whole-call steps (the Bardana bulk update, the ledger fetches) let the
   error propagate; the screen decides what to show.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Backend (persistence collaborator) exceptions


class BackendError(BillingKernelError):
    """Base exception for failures talking to the persistence backend."""

    code: str = "BACKEND_ERROR"

    def __init__(
        self,
        resource: str,
        reason: str,
        status: int | None = None,
        details: list[str] | None = None,
    ):
        self.resource = resource
        self.reason = reason
        self.status = status
        self.details = [details] if isinstance(details, str) else list(details or [])
        message = f"{resource}: {reason}"
        if status is not None:
            message = f"{message} (HTTP {status})"
        super().__init__(message)


class FetchError(BackendError):
    """A read from the backend failed (network, HTTP, envelope or decoding)."""

    code: str = "FETCH_FAILED"


class UpdateError(BackendError):
    """A write to the backend failed (stock update, item create/delete)."""

    code: str = "UPDATE_FAILED"


# Inventory exceptions


class InventoryError(BillingKernelError):
    """Base exception for inventory errors."""

    code: str = "INVENTORY_ERROR"


class LookupMissError(InventoryError):
    """An item referenced by name was not found in the catalog."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_name: str):
        self.item_name = item_name
        super().__init__(f"Item not found: {item_name}")


class UniversalItemError(InventoryError):
    """The universal item cannot be deleted, renamed or recategorized."""

    code: str = "UNIVERSAL_ITEM_PROTECTED"

    def __init__(self, item_name: str, action: str):
        self.item_name = item_name
        self.action = action
        super().__init__(
            f"{item_name} is a universal item and cannot be {action}"
        )


class DuplicateItemError(InventoryError):
    """A product with this name already exists."""

    code: str = "DUPLICATE_ITEM"

    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"A product with this name already exists: {product_name}")


# Input and configuration exceptions


class ValidationError(BillingKernelError):
    """Input failed validation before any mutation happened."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, reason: str, field: str | None = None):
        self.reason = reason
        self.field = field
        if field:
            super().__init__(f"Invalid {field}: {reason}")
        else:
            super().__init__(reason)


class ConfigurationError(BillingKernelError):
    """A setting could not be parsed or is out of range."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting}: {reason}")
