"""Exceptions raised by er-save-lib.

Structural problems (bad size, bad header, misaligned cipher blocks, a
truncated archive) abort a load. Checksum failures are carried as data on the
affected section and only become ``ChecksumMismatchError`` in strict mode.
Lookups of ids or tables that do not exist raise ``LookupError`` subclasses so
callers probing optional content can catch them as such.
"""


class SaveApiError(Exception):
    """Base class for every error raised by the library"""
    pass


class SaveParseError(SaveApiError):
    """The outer save container could not be parsed"""
    pass


class ChecksumMismatchError(SaveApiError):
    """A section failed checksum verification while loading in strict mode"""

    def __init__(self, section_index: int):
        self.section_index = section_index
        super().__init__(f"Checksum mismatch in section {section_index}")


class CorruptSectionError(SaveApiError):
    """The structured content of a checksum-invalid section could not be decoded"""

    def __init__(self, section_index: int, reason: str):
        self.section_index = section_index
        self.reason = reason
        super().__init__(f"Section {section_index} is corrupt: {reason}")


class SectionCapacityError(SaveApiError):
    """An edit would no longer fit the fixed size of its section"""
    pass


class RegulationParseError(SaveApiError):
    """The regulation archive could not be parsed"""
    pass


class ParamDecodeError(SaveApiError):
    """A param table is inconsistent with its schema"""
    pass


class ParamEncodeError(SaveApiError):
    """Param rows could not be laid out as a table"""
    pass


class ParamNotFound(SaveApiError, LookupError):
    """The regulation archive has no table with the requested name"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Param {name!r} not found!")


class EventIdNotFound(SaveApiError, LookupError):
    """The flag id is not present in the event flag index"""

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"EventId {event_id} not found!")


class CharacterIndexError(SaveApiError, IndexError):
    """A character slot index outside [0, 10)"""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Character index {index} out of range (expected 0-9)")
