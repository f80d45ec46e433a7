"""
Typed Exception Hierarchy for the Charter Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A ledger must tell its callers precisely what went wrong. Generic exceptions
like ValueError force callers to parse error messages, which breaks as soon
as the wording changes. Every error raised by the ledger therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example - RIGHT way to handle a rejected posting:
    try:
        journal.post_entry(entry_id, actor_id="admin")
    except UnbalancedEntryError as e:
        api_response(code=e.code, debits=e.debits, credits=e.credits)
    except AlreadyPostedError as e:
        api_response(code=e.code, reference=e.reference_number)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerError:

    LedgerError (base)
    |
    +-- ValidationError                 input rejected at a mutation boundary
    |   +-- MissingFieldError
    |   +-- UnbalancedEntryError
    |   +-- InvalidAccountError
    |   +-- InvalidAmountError
    |   +-- InvalidCurrencyError
    |   +-- RecognitionNotDueError
    |   +-- PriorYearImportValidationError
    |
    +-- StateError                      operation illegal in the current state
    |   +-- PostedEntryImmutableError
    |   +-- AlreadyPostedError
    |   +-- AlreadyRecognizedError
    |   +-- InvalidRecognitionTransitionError
    |   +-- YearAlreadyClosedError
    |   +-- PreCloseCheckError
    |
    +-- NotFoundError                   unknown identifier
    |   +-- JournalEntryNotFoundError
    |   +-- RecognitionNotFoundError
    |   +-- ProjectNotFoundError
    |
    +-- DataGapError                    no data available for a report period
    |   +-- DocumentSourceUnavailableError
    |
    +-- CurrencyError
        +-- ExchangeRateNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                            | When Raised
-----------|---------------------------------|----------------------------------
Validation | MISSING_FIELD                   | Required input absent or empty
           | UNBALANCED_ENTRY                | |debits - credits| >= 0.01
           | INVALID_ACCOUNT                 | Code not in chart of accounts
           | INVALID_AMOUNT                  | Negative amount, bad rate, all-zero entry
           | INVALID_CURRENCY                | Not a valid ISO 4217 code
           | RECOGNITION_NOT_DUE             | Service period has not ended
           | PRIOR_YEAR_IMPORT_INVALID       | Import request failed validation
-----------|---------------------------------|----------------------------------
State      | POSTED_ENTRY_IMMUTABLE          | Update/delete of a posted entry
           | ALREADY_POSTED                  | Posting a posted entry
           | ALREADY_RECOGNIZED              | Recognizing a recognized record
           | INVALID_RECOGNITION_TRANSITION  | Transition not in the state machine
           | YEAR_ALREADY_CLOSED             | Year-end close run twice
           | PRE_CLOSE_CHECK_FAILED          | Drafts or imbalance block a close
-----------|---------------------------------|----------------------------------
NotFound   | JOURNAL_ENTRY_NOT_FOUND         | Entry id doesn't exist
           | RECOGNITION_NOT_FOUND           | Recognition id doesn't exist
           | PROJECT_NOT_FOUND               | Project id unknown to directory
-----------|---------------------------------|----------------------------------
DataGap    | DOCUMENT_SOURCE_UNAVAILABLE     | Document fetch failed/timed out
-----------|---------------------------------|----------------------------------
Currency   | EXCHANGE_RATE_NOT_FOUND         | No stored, provided or legacy rate

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Reports never raise on imbalance. Trial balance and balance sheet return
   ``is_balanced=False`` with the numeric difference; only mutations raise.

2. DataGapError is raised by document collaborators and caught by the
   reporting service, which turns it into an empty data set flagged on the
   report. It is an exception type so that collaborators have a typed way
   to say "nothing available", not a failure the caller must handle.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


# Validation errors


class ValidationError(LedgerError):
    """Input rejected synchronously at a mutation boundary."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is absent or empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str, context: str = ""):
        self.field_name = field_name
        self.context = context
        suffix = f" ({context})" if context else ""
        super().__init__(f"Missing required field: {field_name}{suffix}")


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits within tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


class InvalidAccountError(ValidationError):
    """Account code is not usable for posting."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid account {account_code}: {reason}")


class InvalidAmountError(ValidationError):
    """A monetary amount or rate is negative, zero where not allowed, or malformed."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, value: str, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field_name} {value}: {reason}")


class InvalidCurrencyError(ValidationError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: {currency}")


class RecognitionNotDueError(ValidationError):
    """Automatic recognition requested before the service period ended."""

    code: str = "RECOGNITION_NOT_DUE"

    def __init__(self, recognition_id: str, service_end_date: str, today: str):
        self.recognition_id = recognition_id
        self.service_end_date = service_end_date
        self.today = today
        super().__init__(
            f"Revenue {recognition_id} is not due: service ends "
            f"{service_end_date}, today is {today}"
        )


class PriorYearImportValidationError(ValidationError):
    """Prior-year import request failed validation."""

    code: str = "PRIOR_YEAR_IMPORT_INVALID"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"Prior-year import rejected: {'; '.join(errors)}"
        )


# State errors


class StateError(LedgerError):
    """Operation is not allowed in the record's current state."""

    code: str = "STATE_ERROR"


class PostedEntryImmutableError(StateError):
    """Attempt to update or delete a posted journal entry."""

    code: str = "POSTED_ENTRY_IMMUTABLE"

    def __init__(self, entry_id: str, reference_number: str, operation: str):
        self.entry_id = entry_id
        self.reference_number = reference_number
        self.operation = operation
        super().__init__(
            f"Cannot {operation} posted journal entry {reference_number} ({entry_id})"
        )


class AlreadyPostedError(StateError):
    """Journal entry has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entry_id: str, reference_number: str):
        self.entry_id = entry_id
        self.reference_number = reference_number
        super().__init__(
            f"Journal entry {reference_number} ({entry_id}) is already posted"
        )


class AlreadyRecognizedError(StateError):
    """Revenue recognition record is already in a recognized state."""

    code: str = "ALREADY_RECOGNIZED"

    def __init__(self, recognition_id: str, status: str):
        self.recognition_id = recognition_id
        self.status = status
        super().__init__(
            f"Revenue {recognition_id} already recognized (status={status})"
        )


class InvalidRecognitionTransitionError(StateError):
    """Requested recognition transition is not part of the state machine."""

    code: str = "INVALID_RECOGNITION_TRANSITION"

    def __init__(self, recognition_id: str, status: str, trigger: str):
        self.recognition_id = recognition_id
        self.status = status
        self.trigger = trigger
        super().__init__(
            f"Cannot recognize {recognition_id} from status '{status}' "
            f"with trigger '{trigger}'"
        )


class YearAlreadyClosedError(StateError):
    """A closing entry already exists for the fiscal year."""

    code: str = "YEAR_ALREADY_CLOSED"

    def __init__(self, company_id: str, fiscal_year: int, entry_id: str):
        self.company_id = company_id
        self.fiscal_year = fiscal_year
        self.entry_id = entry_id
        super().__init__(
            f"Fiscal year {fiscal_year} already closed for {company_id} "
            f"by entry {entry_id}"
        )


class PreCloseCheckError(StateError):
    """Pre-close checks failed; the year cannot be closed."""

    code: str = "PRE_CLOSE_CHECK_FAILED"

    def __init__(self, company_id: str, fiscal_year: int, failures: list[str]):
        self.company_id = company_id
        self.fiscal_year = fiscal_year
        self.failures = failures
        super().__init__(
            f"Cannot close {fiscal_year} for {company_id}: {'; '.join(failures)}"
        )


# Not-found errors


class NotFoundError(LedgerError):
    """Referenced identifier does not exist."""

    code: str = "NOT_FOUND"


class JournalEntryNotFoundError(NotFoundError):
    """Journal entry with given id was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class RecognitionNotFoundError(NotFoundError):
    """Revenue recognition record with given id was not found."""

    code: str = "RECOGNITION_NOT_FOUND"

    def __init__(self, recognition_id: str):
        self.recognition_id = recognition_id
        super().__init__(f"Revenue recognition record not found: {recognition_id}")


class ProjectNotFoundError(NotFoundError):
    """Project id is unknown to the project directory."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# Data gaps


class DataGapError(LedgerError):
    """No data is available for the requested report period."""

    code: str = "DATA_GAP"


class DocumentSourceUnavailableError(DataGapError):
    """The document source failed or timed out for a date range."""

    code: str = "DOCUMENT_SOURCE_UNAVAILABLE"

    def __init__(self, start: str, end: str, reason: str):
        self.start = start
        self.end = end
        self.reason = reason
        super().__init__(
            f"Documents unavailable for {start}..{end}: {reason}"
        )


# Currency errors


class CurrencyError(LedgerError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class ExchangeRateNotFoundError(CurrencyError):
    """No stored, provided, or legacy rate exists for a currency."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, currency: str, reporting_currency: str, on_date: str):
        self.currency = currency
        self.reporting_currency = reporting_currency
        self.on_date = on_date
        super().__init__(
            f"No exchange rate {currency}->{reporting_currency} for {on_date}"
        )
