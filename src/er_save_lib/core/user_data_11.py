"""Regulation section (section 11)."""

from ..regulation import Regulation


class UserData11:
    """Section 11 and the regulation archive it carries."""

    def __init__(self, section):
        self.section = section
        self.regulation = Regulation(section.plaintext)

    def to_bytes(self) -> bytes:
        return self.regulation.to_bytes()
