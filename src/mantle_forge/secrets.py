"""Secret assignment parsing and secret status models."""

from __future__ import annotations

from dataclasses import dataclass

from mantle_forge.errors import SecretFormatError, TransportError

SECRET_FORMAT_HINT = "Invalid format. Use KEY=VALUE"


def parse_secret_assignment(raw: str) -> tuple[str, str]:
    """Split ``KEY=VALUE`` on the first ``=``.

    Everything after the first separator belongs to the value, so
    ``FOO=bar=baz`` yields ``("FOO", "bar=baz")``. Both parts must be
    non-empty.
    """
    key, separator, value = raw.partition("=")
    key = key.strip()
    if not separator or not key or not value:
        raise SecretFormatError(SECRET_FORMAT_HINT)
    return key, value


@dataclass(frozen=True)
class SecretRecord:
    key: str
    set: bool


@dataclass(frozen=True)
class SecretsStatus:
    required: tuple[SecretRecord, ...]
    missing: tuple[str, ...]
    all_required_set: bool

    @classmethod
    def from_payload(cls, payload: dict) -> "SecretsStatus":
        secrets = payload.get("secrets")
        raw_required = secrets.get("required", []) if isinstance(secrets, dict) else []
        if not isinstance(raw_required, list):
            raise TransportError("secrets.required must be a list")

        required: list[SecretRecord] = []
        for entry in raw_required:
            if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
                raise TransportError("secrets.required entries must carry a key")
            required.append(SecretRecord(key=entry["key"], set=bool(entry.get("set"))))

        raw_missing = payload.get("missing") or []
        if not isinstance(raw_missing, list):
            raise TransportError("missing must be a list")

        return cls(
            required=tuple(required),
            missing=tuple(str(key) for key in raw_missing),
            all_required_set=bool(payload.get("all_required_set")),
        )

    def to_dict(self) -> dict:
        return {
            "required": [{"key": record.key, "set": record.set} for record in self.required],
            "missing": list(self.missing),
            "all_required_set": self.all_required_set,
        }


__all__ = [
    "SECRET_FORMAT_HINT",
    "SecretRecord",
    "SecretsStatus",
    "parse_secret_assignment",
]
