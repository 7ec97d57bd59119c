"""Parse cargo package ids into comparable package identities."""

from __future__ import annotations

import re
from dataclasses import dataclass

from crategraph.core.errors import UnparsableIdentifierError

# "serde 1.0.197 (registry+https://github.com/rust-lang/crates.io-index)"
_LEGACY_ID = re.compile(r"^(?P<name>[A-Za-z0-9_-]+) (?P<version>\S+) \((?P<source>[^()]+)\)$")

# "registry+https://github.com/rust-lang/crates.io-index#serde@1.0.197"
# "path+file:///work/app#0.1.0"
_SPEC_ID = re.compile(r"^(?P<source>[a-z]+\+[^#\s]+)#(?:(?P<name>[A-Za-z0-9_-]+)@)?(?P<version>[^#@\s]+)$")

_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True, order=True)
class PackageIdentity:
    """Name, version and source of one package in a metadata snapshot."""

    name: str
    version: str
    source: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


def _name_from_source(source: str) -> str:
    """Last path segment of the source URL, without query string."""
    url = source.split("?", 1)[0].rstrip("/")
    return url.rsplit("/", 1)[-1]


def parse_package_id(package_id: str) -> PackageIdentity:
    """
    Parse a cargo package id.

    Both the legacy "<name> <version> (<source>)" form and the package id
    spec form "<source>#[<name>@]<version>" used by newer cargo releases are
    accepted. Raises UnparsableIdentifierError for anything else.
    """
    match = _LEGACY_ID.match(package_id)
    if match is not None:
        return PackageIdentity(match["name"], match["version"], match["source"])

    match = _SPEC_ID.match(package_id)
    if match is None:
        raise UnparsableIdentifierError(package_id)
    name = match["name"] or _name_from_source(match["source"])
    if not _NAME.match(name):
        raise UnparsableIdentifierError(package_id)
    return PackageIdentity(name, match["version"], match["source"])
