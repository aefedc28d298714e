"""Card models."""
from dataclasses import dataclass


@dataclass
class Card:
    id: str
    cardholder: str
    initials: str = ""
    active: bool = True

    def to_dict(self):
        return {"id": self.id, "cardholder": self.cardholder, "initials": self.initials}
