from dataclasses import dataclass


@dataclass
class BootEntry:
    id: str  # Linux: '0000' style; Windows: '{GUID}'
    description: str
    is_current: bool = False
    is_next: bool = False

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'description': self.description,
            'is_current': self.is_current,
            'is_next': self.is_next,
        }
