"""NASA FIRMS active-fire feed."""

import csv
import io

from eas_system.data_management.schemas import FireDetection
from eas_system.sources.base_client import BaseSourceClient
from eas_system.utils.geo import parse_float

# MODIS text feeds put detection confidence in the ninth column
CONFIDENCE_COLUMN = 8


class FIRMSClient(BaseSourceClient):
    """
    Bulk CSV feed of recent satellite fire detections.

    The feed is global; filtering by distance happens in the validator.
    Rows with non-numeric coordinates or confidence (VIIRS uses l/n/h
    letters) are skipped.
    """

    name = "NASA FIRMS"
    base_url = "https://firms.modaps.eosdis.nasa.gov/active_fire/text/Global_MCD14DL_NRT.txt"

    async def detections(self) -> list[FireDetection]:
        response = await self._request(self.base_url)
        detections = self.parse_csv(response.text)
        self.logger.debug(f"FIRMS feed parsed: {len(detections)} detections")
        return detections

    @staticmethod
    def parse_csv(text: str) -> list[FireDetection]:
        rows = csv.reader(io.StringIO(text))
        header = next(rows, None)
        if not header:
            return []

        columns = {name.strip().lower(): index for index, name in enumerate(header)}
        lat_col = columns.get("latitude", 0)
        lng_col = columns.get("longitude", 1)
        conf_col = columns.get("confidence", CONFIDENCE_COLUMN)
        date_col = columns.get("acq_date")

        detections = []
        for row in rows:
            if len(row) <= max(lat_col, lng_col, conf_col):
                continue
            lat = parse_float(row[lat_col])
            lng = parse_float(row[lng_col])
            confidence = parse_float(row[conf_col])
            if lat is None or lng is None or confidence is None:
                continue
            detections.append(
                FireDetection(
                    latitude=lat,
                    longitude=lng,
                    confidence=confidence,
                    acquired_at=row[date_col] if date_col is not None and date_col < len(row) else None,
                )
            )
        return detections
