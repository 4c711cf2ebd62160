"""Helpers for deriving and validating deterministic branch identities.

Branch hash format:
- 0x<64-char-lowercase-hex>
where the digest is keccak256(utf8(f"{repo_url}/{branch_name}")).

The agent service derives the same value when a branch is pushed, so both
inputs are hashed exactly as given (no case folding, no trailing slash or
``.git`` normalization).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from Crypto.Hash import keccak

BRANCH_HASH_PREFIX = "0x"
EXPECTED_BRANCH_HASH_LEN = len(BRANCH_HASH_PREFIX) + 64

_BRANCH_HASH_RE = re.compile(r"^0x[0-9a-f]{64}$")


def keccak256_hex(text: str) -> str:
    digest = keccak.new(digest_bits=256)
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


def resolve_branch_hash(repo_url: str, branch_name: str) -> str:
    return f"{BRANCH_HASH_PREFIX}{keccak256_hex(f'{repo_url}/{branch_name}')}"


def is_branch_hash(value: str) -> bool:
    if len(value) != EXPECTED_BRANCH_HASH_LEN:
        return False
    return _BRANCH_HASH_RE.match(value) is not None


def validate_branch_hash(repo_url: str, branch_name: str, branch_hash: str) -> bool:
    if not is_branch_hash(branch_hash):
        return False
    return resolve_branch_hash(repo_url, branch_name) == branch_hash


@dataclass(frozen=True)
class BranchContext:
    repo_url: str
    branch_name: str

    @property
    def branch_hash(self) -> str:
        return resolve_branch_hash(self.repo_url, self.branch_name)
