"""Exception hierarchy for contact-graph.

Merge failures are reported through ``MergeOutcome`` rather than raised;
everything else that can go wrong in the engine surfaces as one of these.
A related person whose name matches no contact is not an error at all.
"""


class ContactGraphError(Exception):
    """Base class for all contact-graph errors."""


class OracleCallError(ContactGraphError):
    """The extraction oracle could not be reached or returned nothing."""


class ExtractionParseError(ContactGraphError, ValueError):
    """The oracle answered, but not with a parseable profile."""


class InvalidMergeInput(ContactGraphError, ValueError):
    """Merge preconditions violated (no profiles, unknown survivor, repeated ids)."""


class EmptyEvidenceError(ContactGraphError, ValueError):
    """Enrichment requested without any usable evidence."""


class DuplicateEntityId(ContactGraphError, ValueError):
    """An entity with this id already exists in the store."""


class UnknownEntity(ContactGraphError, KeyError):
    """No entity with this id exists in the store."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""
