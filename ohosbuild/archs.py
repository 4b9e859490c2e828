# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import fnmatch
import functools
import pathlib

import jsonschema
import yaml

from .errors import ConfigurationError

ARCHS_CONFIG = pathlib.Path(__file__).parent / "archs.yml"

# Runtime libraries that are opt-in for every target.
OPTIONAL_LIBRARIES = ("libgomp", "libatomic", "libitm", "libquadmath")

ARCH_RULE_SCHEMA = {
    "type": "object",
    "properties": {
        "pattern": {"type": "string"},
        "priority": {"type": "integer"},
        "arch": {"type": "string"},
        "configure": {"type": "array", "items": {"type": "string"}},
        "sanitizer": {"type": "boolean"},
        "hash-style": {"enum": ["gnu", "sysv"]},
        "disable-libraries": {
            "type": "array",
            "items": {"enum": list(OPTIONAL_LIBRARIES)},
        },
    },
    "additionalProperties": False,
    "required": ["pattern", "priority", "arch"],
}

ARCH_RULES_SCHEMA = {
    "type": "array",
    "items": ARCH_RULE_SCHEMA,
}


@dataclasses.dataclass(frozen=True)
class ArchProfile:
    arch_id: str
    configure_flags: tuple[str, ...] = ()
    sanitizer: bool = False
    hash_style: str = "gnu"
    disabled_libraries: frozenset[str] = frozenset()

    def sanitizer_flag(self) -> str:
        if self.sanitizer:
            return "--enable-libsanitizer"
        else:
            return "--disable-libsanitizer"

    def configure_args(self) -> list[str]:
        """Architecture specific arguments for gcc's configure."""
        return [
            *self.configure_flags,
            self.sanitizer_flag(),
            "--with-linker-hash-style=%s" % self.hash_style,
        ]


@dataclasses.dataclass(frozen=True)
class ArchRule:
    pattern: str
    priority: int
    profile: ArchProfile

    def matches(self, arch: str) -> bool:
        return fnmatch.fnmatchcase(arch, self.pattern)


def parse_arch_rules(data) -> tuple[ArchRule, ...]:
    """Validate and convert parsed YAML data into match rules."""
    try:
        jsonschema.validate(data, ARCH_RULES_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigurationError("invalid architecture table: %s" % e.message) from e

    rules = []
    for entry in data:
        profile = ArchProfile(
            arch_id=entry["arch"],
            configure_flags=tuple(entry.get("configure", [])),
            sanitizer=entry.get("sanitizer", False),
            hash_style=entry.get("hash-style", "gnu"),
            disabled_libraries=frozenset(entry.get("disable-libraries", [])),
        )
        rules.append(ArchRule(entry["pattern"], entry["priority"], profile))

    # Highest priority first. The sort is stable so declaration order is kept
    # within a priority; ties between matching rules are rejected at lookup.
    rules.sort(key=lambda r: -r.priority)

    return tuple(rules)


@functools.lru_cache(maxsize=None)
def arch_rules(path: pathlib.Path = ARCHS_CONFIG) -> tuple[ArchRule, ...]:
    """Obtain the parsed architecture table."""
    with path.open("rb") as fh:
        return parse_arch_rules(yaml.load(fh, Loader=yaml.SafeLoader))


def match_arch(arch: str, rules) -> ArchRule:
    candidates = [r for r in rules if r.matches(arch)]

    if not candidates:
        raise ConfigurationError("unsupported target architecture: %s" % arch)

    best = candidates[0]
    tied = [r.pattern for r in candidates if r.priority == best.priority]
    if len(tied) > 1:
        raise ConfigurationError(
            "ambiguous architecture %s matches %s at priority %d"
            % (arch, ", ".join(tied), best.priority)
        )

    return best


def lookup(target: str, rules=None) -> ArchProfile:
    """Obtain the ArchProfile for a target triple."""
    arch = str(target).split("-")[0]
    if not arch:
        raise ConfigurationError("malformed target triple: %r" % target)

    return match_arch(arch, arch_rules() if rules is None else rules).profile
