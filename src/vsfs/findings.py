"""Consistency findings and the repairs made for them."""
from typing import Iterator
from dataclasses import dataclass, field
from enum import Enum
import logging


class Category(str, Enum):
    """One category per validator, in the order the validators run."""
    superblock = "Superblock"
    inode_bitmap = "Inode bitmap"
    data_bitmap = "Data bitmap"
    duplicate = "Duplicate blocks"
    bad_block = "Bad blocks"


@dataclass(frozen=True, kw_only=True)
class Finding:
    """
    A single inconsistency: where it is, what was found there,
    and what was expected instead.
    """
    category: Category
    location: str
    observed: object
    expected: object
    message: str

    def __str__(self):
        return f"Error: {self.message}"


@dataclass(frozen=True, kw_only=True)
class Repair:
    category: Category
    location: str
    before: object
    after: object

    def __str__(self):
        return f"Fixed {self.category.value.lower()} {self.location}: {self.before} -> {self.after}"


@dataclass
class FindingLog:
    """The findings of one validation pass, in the order they were reported"""
    findings: list[Finding] = field(default_factory=list)

    def __len__(self):
        return len(self.findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.findings)

    @property
    def error_count(self) -> int:
        return len(self.findings)

    def report(self, category: Category, location: str, observed: object, expected: object, message: str):
        finding = Finding(
            category=category,
            location=location,
            observed=observed,
            expected=expected,
            message=message,
        )
        logging.debug(f"{category.value}: {message}")
        self.findings.append(finding)

    def by_category(self, category: Category) -> list[Finding]:
        return [f for f in self.findings if f.category == category]

    def is_clean(self, category: Category) -> bool:
        return not self.by_category(category)
