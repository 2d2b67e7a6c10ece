"""
Typed exception hierarchy for the transaction lifecycle kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP layer, scheduler, tests) must react to lifecycle failures by
category, never by parsing message text.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (transaction id, status, field names)

Example:
    try:
        submission.submit(transaction_id, actor_id)
    except LockedStateError as e:
        return {"error": e.code, "status": e.status}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TxflowError (base)
    |
    +-- NotFoundError
    |   +-- TransactionNotFoundError
    |   +-- ExceptionCaseNotFoundError
    |   +-- DocumentNotFoundError
    |
    +-- AccessDeniedError
    |
    +-- LockedStateError
    |   +-- InvalidTransitionError
    |   +-- ConcurrentTransitionError
    |
    +-- ValidationError
    |   +-- AllowlistViolationError
    |   +-- InvalidPatchError
    |   +-- RevisionDeadlinePassedError
    |   +-- DuplicateOpenCaseError
    |   +-- InvalidItemError
    |
    +-- ExtractionFailure
    |   +-- UnsupportedDocumentTypeError
    |
    +-- ParsingAmbiguity
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|--------------------------------------
Not found    | TRANSACTION_NOT_FOUND      | Transaction id absent
             | EXCEPTION_CASE_NOT_FOUND   | Case absent or not owned by actor
             | DOCUMENT_NOT_FOUND         | No document uploaded yet
-------------|----------------------------|--------------------------------------
Access       | ACCESS_DENIED              | Actor is not the owner
-------------|----------------------------|--------------------------------------
Locked       | LOCKED_STATE               | Status forbids the requested action
             | INVALID_TRANSITION         | (status, action) not in the table
             | CONCURRENT_TRANSITION      | Conditional update matched zero rows
-------------|----------------------------|--------------------------------------
Validation   | ALLOWLIST_VIOLATION        | Patch key outside the case allowlist
             | INVALID_PATCH              | Empty or malformed patch map
             | REVISION_DEADLINE_PASSED   | Revision window already expired
             | DUPLICATE_OPEN_CASE        | A second OPEN case for one transaction
             | INVALID_ITEM               | Item row fails basic checks
-------------|----------------------------|--------------------------------------
Extraction   | EXTRACTION_FAILURE         | Extraction provider unusable
             | UNSUPPORTED_DOCUMENT_TYPE  | Upload is not PNG/JPEG
-------------|----------------------------|--------------------------------------
Parsing      | PARSING_AMBIGUITY          | Field absent from every pass
-------------|----------------------------|--------------------------------------
Immutability | IMMUTABILITY_VIOLATION     | UPDATE/DELETE on an archived row

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ConcurrentTransitionError IS A LockedStateError.
   A zero-row conditional update means the persisted status no longer
   matches what the caller expected.  From the caller's perspective that
   is the same category as any other forbidden-state action, and it is
   never retried automatically.

2. ParsingAmbiguity IS NOT FATAL.
   The reconciliation engine raises it internally and converts it into a
   mismatch record.  It only escapes the engine when a caller explicitly
   asks for a required field.
"""


class TxflowError(Exception):
    """
    Base exception for all txflow errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TXFLOW_ERROR"


# Not-found exceptions


class NotFoundError(TxflowError):
    """Entity absent, or not owned by the requesting actor."""

    code: str = "NOT_FOUND"


class TransactionNotFoundError(NotFoundError):
    """Transaction with given ID was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class ExceptionCaseNotFoundError(NotFoundError):
    """Exception case not found or not owned by the actor."""

    code: str = "EXCEPTION_CASE_NOT_FOUND"

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Exception case not found or not owned: {case_id}")


class DocumentNotFoundError(NotFoundError):
    """Transaction has no uploaded document to reconcile against."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"No document found for transaction {transaction_id}")


# Access exceptions


class AccessDeniedError(TxflowError):
    """Actor is not permitted to act on the transaction."""

    code: str = "ACCESS_DENIED"

    def __init__(self, transaction_id: str, actor_id: str, reason: str = "not the owner"):
        self.transaction_id = transaction_id
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(
            f"Access denied on transaction {transaction_id} for actor {actor_id}: {reason}"
        )


# Locked-state exceptions


class LockedStateError(TxflowError):
    """Transaction status forbids the requested action."""

    code: str = "LOCKED_STATE"

    def __init__(self, transaction_id: str, status: str, action: str):
        self.transaction_id = transaction_id
        self.status = status
        self.action = action
        super().__init__(
            f"Transaction {transaction_id} in status '{status}' does not allow '{action}'"
        )


class InvalidTransitionError(LockedStateError):
    """The (status, action) pair is absent from the transition table."""

    code: str = "INVALID_TRANSITION"


class ConcurrentTransitionError(LockedStateError):
    """Conditional update matched zero rows: not found or already processed."""

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, transaction_id: str, expected_statuses: tuple[str, ...], action: str):
        self.transaction_id = transaction_id
        self.expected_statuses = expected_statuses
        self.status = "|".join(expected_statuses)
        self.action = action
        Exception.__init__(
            self,
            f"Transaction {transaction_id} not found or already processed "
            f"(expected status {self.status} for '{action}')",
        )


# Validation exceptions


class ValidationError(TxflowError):
    """Request is well-formed but violates a business rule."""

    code: str = "VALIDATION_ERROR"


class AllowlistViolationError(ValidationError):
    """Patch touches a field outside the exception case allowlist."""

    code: str = "ALLOWLIST_VIOLATION"

    def __init__(self, case_id: str, fields: list[str], allowlist: list[str]):
        self.case_id = case_id
        self.fields = fields
        self.allowlist = allowlist
        super().__init__(
            f"Fields {fields} are not editable on case {case_id} (allowed: {allowlist})"
        )


class InvalidPatchError(ValidationError):
    """Patch map is empty or carries unusable values."""

    code: str = "INVALID_PATCH"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid patch: {reason}")


class RevisionDeadlinePassedError(ValidationError):
    """The revision window for a returned transaction has closed."""

    code: str = "REVISION_DEADLINE_PASSED"

    def __init__(self, transaction_id: str, deadline: str):
        self.transaction_id = transaction_id
        self.deadline = deadline
        super().__init__(
            f"Revision deadline has passed for transaction {transaction_id} ({deadline})"
        )


class DuplicateOpenCaseError(ValidationError):
    """Transaction already has an OPEN exception case."""

    code: str = "DUPLICATE_OPEN_CASE"

    def __init__(self, transaction_id: str, case_id: str):
        self.transaction_id = transaction_id
        self.case_id = case_id
        super().__init__(
            f"Transaction {transaction_id} already has open exception case {case_id}"
        )


class InvalidItemError(ValidationError):
    """A transaction item fails basic field checks."""

    code: str = "INVALID_ITEM"

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Item {index}: {reason}")


# Extraction exceptions


class ExtractionFailure(TxflowError):
    """Text extraction could not be attempted on the input."""

    code: str = "EXTRACTION_FAILURE"


class UnsupportedDocumentTypeError(ExtractionFailure):
    """Uploaded document is not an accepted image type."""

    code: str = "UNSUPPORTED_DOCUMENT_TYPE"

    def __init__(self, content_type: str, allowed: tuple[str, ...]):
        self.content_type = content_type
        self.allowed = allowed
        super().__init__(
            f"Unsupported document type '{content_type}' (allowed: {', '.join(allowed)})"
        )


# Parsing exceptions


class ParsingAmbiguity(TxflowError):
    """A recorded field could not be located in any extraction pass."""

    code: str = "PARSING_AMBIGUITY"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' not found in any extraction pass")


# Immutability exceptions


class ImmutabilityViolationError(TxflowError):
    """
    Attempted to modify or delete an immutable record.

    Archived transaction versions, activity logs and uploaded documents
    are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
