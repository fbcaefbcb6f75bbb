"""Pairing response document.

Each phase answers with an XML tree rooted at ``<root status_code="200">``.
Field names are fixed by the Moonlight client and must not change.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

# Response field names
PAIRED = "paired"
PLAINCERT = "plaincert"
CHALLENGE_RESPONSE = "challengeresponse"
PAIRING_SECRET = "pairingsecret"


def to_hex(data: bytes) -> str:
    """Hex encode bytes the way GameStream hosts do (uppercase)."""
    return data.hex().upper()


@dataclass(frozen=True)
class PairingResponse:
    """Tree-structured response for one pairing phase.

    Attributes:
        fields: Ordered child elements of the root node.
        status_code: HTTP-like status carried as a root attribute.
    """

    fields: dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    @classmethod
    def paired(cls, **fields: str) -> "PairingResponse":
        """Successful step: ``paired=1`` followed by the given fields."""
        return cls(fields={PAIRED: "1", **fields})

    @classmethod
    def unpaired(cls) -> "PairingResponse":
        """Uniform failure response, identical for every failure cause."""
        return cls(fields={PAIRED: "0"})

    @property
    def is_paired(self) -> bool:
        return self.fields.get(PAIRED) == "1"

    def get(self, name: str) -> str | None:
        return self.fields.get(name)

    def to_element(self) -> ET.Element:
        root = ET.Element("root", {"status_code": str(self.status_code)})
        for name, value in self.fields.items():
            ET.SubElement(root, name).text = value
        return root

    def to_xml(self) -> bytes:
        """Serialize to an XML document."""
        return ET.tostring(self.to_element(), encoding="utf-8", xml_declaration=True)
