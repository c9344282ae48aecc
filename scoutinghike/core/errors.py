"""Error kinds raised by the services.

Every kind carries a user-facing title and description; the app turns them
into a JSON error response and a destructive notification.
"""
from __future__ import annotations


class HikeError(Exception):
    code = "error"
    title = "Er ging iets mis"
    status_code = 400

    def __init__(self, description: str | None = None):
        self.description = description or self.default_description()
        super().__init__(self.description)

    def default_description(self) -> str:
        return self.title


class InvalidCode(HikeError):
    code = "invalid_code"
    title = "Ongeldige toegangscode"
    status_code = 404


class CodeAlreadyUsed(HikeError):
    code = "code_already_used"
    title = "Deze toegangscode is al gebruikt"
    status_code = 409


class CodeExpired(HikeError):
    code = "code_expired"
    title = "Deze toegangscode is verlopen"
    status_code = 410


class EventNotFoundOrInactive(HikeError):
    code = "event_not_found_or_inactive"
    title = "Evenement niet gevonden of niet meer actief"
    status_code = 404


class DuplicateName(HikeError):
    code = "duplicate_name"
    title = "Naam al in gebruik"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Er is al een actieve code voor {name}")


class DuplicateCheckpoint(HikeError):
    code = "duplicate_checkpoint"
    title = "Groep al geregistreerd"
    status_code = 409

    def default_description(self) -> str:
        return "Deze groep is al eerder geregistreerd bij deze post."


class StoreError(HikeError):
    """Persistence failure; the message of the underlying error is kept verbatim."""
    code = "store_error"
    title = "Fout bij opslaan"
    status_code = 503


class NotFound(HikeError):
    code = "not_found"
    title = "Niet gevonden"
    status_code = 404


class Forbidden(HikeError):
    code = "forbidden"
    title = "Geen toegang"
    status_code = 403


class InvalidName(HikeError):
    code = "invalid_name"
    title = "Naam vereist"
    status_code = 422

    def default_description(self) -> str:
        return "Voer een naam in voor de vrijwilliger"


class InvalidReference(HikeError):
    code = "invalid_reference"
    title = "Ongeldige verwijzing"
    status_code = 422


class AlreadyAssigned(HikeError):
    code = "already_assigned"
    title = "Vrijwilliger al toegewezen"
    status_code = 409

    def default_description(self) -> str:
        return "Deze vrijwilliger is al aan een post toegewezen."
