"""Unified error codes and custom exceptions.

Error code ranges:
  0:       success
  1000xx:  system-wide codes (params, auth, not found, internal)
  2xxxxx:  per-entity business codes, base = 200000 + entity_no * 100

Business errors are delivered in the response envelope with HTTP 200;
only authentication failures and unclassified internal errors change the
HTTP status.
"""

from dataclasses import dataclass


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1000xx: system ---

class InvalidParamsError(AppError):
    def __init__(self, detail: str = "") -> None:
        message = "Invalid Parameter" if not detail else f"Invalid Parameter: {detail}"
        super().__init__(100001, message, 200)


class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(100002, "Unauthorized", 401)


class InternalServerError(AppError):
    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(100003, detail, 500)


class RecordNotFoundError(AppError):
    def __init__(self, entity: str = "record", key: object = None) -> None:
        message = "Not Found" if key is None else f"Not Found: {entity} {key}"
        super().__init__(100004, message, 200)
        self.entity = entity
        self.key = key


class AlreadyExistsError(AppError):
    def __init__(self, detail: str = "Already Exists") -> None:
        super().__init__(100005, detail, 200)


# --- users ---

class UsernameOrPasswordError(AppError):
    def __init__(self) -> None:
        super().__init__(100101, "Invalid username or password", 200)


class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(100102, "Username already exists", 200)


SYSTEM_CODES: list[tuple[int, str]] = [
    (0, "ok"),
    (100001, "Invalid Parameter"),
    (100002, "Unauthorized"),
    (100003, "Internal Server Error"),
    (100004, "Not Found"),
    (100005, "Already Exists"),
    (100101, "Invalid username or password"),
    (100102, "Username already exists"),
]


# --- 2xxxxx: per-entity codes ---

@dataclass(frozen=True)
class EntityErrorCodes:
    """Business error codes of one entity.

    The entity number must be unique (1~999); the nine codes are laid out
    as ``200000 + no * 100 + offset``.
    """

    no: int
    name: str

    @property
    def base(self) -> int:
        return 200000 + self.no * 100

    def create(self) -> AppError:
        return AppError(self.base + 1, f"failed to create {self.name}", 200)

    def delete(self) -> AppError:
        return AppError(self.base + 2, f"failed to delete {self.name}", 200)

    def update(self) -> AppError:
        return AppError(self.base + 3, f"failed to update {self.name}", 200)

    def get(self) -> AppError:
        return AppError(self.base + 4, f"failed to get {self.name} details", 200)

    def list_by_params(self) -> AppError:
        return AppError(self.base + 5, f"failed to list of {self.name}", 200)

    def delete_by_ids(self) -> AppError:
        return AppError(self.base + 6, f"failed to delete by batch ids {self.name}", 200)

    def get_by_condition(self) -> AppError:
        return AppError(
            self.base + 7, f"failed to get {self.name} details by conditions", 200
        )

    def list_by_ids(self) -> AppError:
        return AppError(self.base + 8, f"failed to list by batch ids {self.name}", 200)

    def list_by_last_id(self) -> AppError:
        return AppError(self.base + 9, f"failed to list by last id {self.name}", 200)

    def codes(self) -> list[tuple[int, str]]:
        errors = [
            self.create(), self.delete(), self.update(), self.get(), self.list_by_params(),
            self.delete_by_ids(), self.get_by_condition(), self.list_by_ids(),
            self.list_by_last_id(),
        ]
        return [(e.code, e.message) for e in errors]


_ENTITY_CODES: dict[int, EntityErrorCodes] = {}


def register_entity_codes(no: int, name: str) -> EntityErrorCodes:
    """Declare an entity's code table. Reusing a number is a programming error."""
    if not 1 <= no <= 999:
        raise ValueError(f"entity number must be 1~999, got {no}")
    existing = _ENTITY_CODES.get(no)
    if existing is not None and existing.name != name:
        raise ValueError(f"entity number {no} already used by {existing.name}")
    codes = EntityErrorCodes(no=no, name=name)
    _ENTITY_CODES[no] = codes
    return codes


def list_codes() -> list[tuple[int, str]]:
    """All known codes, system codes first, then entity codes by base."""
    result = list(SYSTEM_CODES)
    for no in sorted(_ENTITY_CODES):
        result.extend(_ENTITY_CODES[no].codes())
    return result
