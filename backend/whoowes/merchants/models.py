"""Merchant models."""
from dataclasses import dataclass


@dataclass
class Merchant:
    id: str
    name: str  # normalized

    def to_dict(self):
        return {"id": self.id, "name": self.name}
