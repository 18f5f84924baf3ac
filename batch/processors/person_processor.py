"""
Per-record processors applied between decode and write
"""

from schemas.person import PersonRecord


def uppercase_first_name(person: PersonRecord) -> PersonRecord:
    """Import processor: convert the first name to uppercase"""
    if person.first_name is not None:
        person.first_name = person.first_name.upper()
    return person


def passthrough(person: PersonRecord) -> PersonRecord:
    """Export processor: return the person as-is"""
    return person
