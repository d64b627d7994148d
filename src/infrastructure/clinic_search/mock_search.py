from typing import List, Sequence, Tuple

from src.application.ports import ClinicSearchPort
from src.domain.models import Clinic


class MockClinicSearchAdapter(ClinicSearchPort):
    def __init__(self, count: int = 5):
        self.count = count

    def search_nearby(
        self, lat: float, lon: float, radius_m: int, tags: Sequence[Tuple[str, str]]
    ) -> List[Clinic]:
        kind = tags[0][1] if tags else "veterinary"
        # Spread sample places north-east of the point, inside the radius
        step = min(radius_m, 5000) / 111_000 / (self.count + 1)
        sample = [
            Clinic(
                id=f"mock/{i+1}",
                name=f"Example {kind.replace('_', ' ').title()} {i+1}",
                lat=lat + step * (self.count - i),
                lon=lon + step * (self.count - i) / 2,
                address=f"{100 + i} Example St",
                kind=kind,
                phone="(000) 000-0000",
            )
            for i in range(self.count)
        ]
        return sample
