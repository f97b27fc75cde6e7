"""Schedule feed client for the ScheduleService API."""
from typing import Optional
import pandas as pd
import requests
from loguru import logger

from configurations.config import Config
from services.http_client import ServiceClient
from services.payloads import extract_records, standardize_columns

SCHEDULE_COLUMNS = ["route_id", "bus_id", "departure_time", "route_name", "route_code"]


class ScheduleService(ServiceClient):
    service_name = "ScheduleService"

    column_mappings = {
        'routeId': 'route_id',
        'route_id': 'route_id',
        'routeID': 'route_id',
        'routeUuid': 'route_id',
        'busId': 'bus_id',
        'bus_id': 'bus_id',
        'busID': 'bus_id',
        'busUuid': 'bus_id',
        'time': 'departure_time',
        'departureTime': 'departure_time',
        'departure_time': 'departure_time',
        'departure': 'departure_time',
        'scheduledTime': 'departure_time',
        'routeName': 'route_name',
        'route_name': 'route_name',
        'routeCode': 'route_code',
        'route_code': 'route_code',
    }

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url or Config.SCHEDULE_SERVICE_URL,
                         timeout or Config.SCHEDULE_SERVICE_TIMEOUT, session)

    def list_schedules(self, limit: Optional[int] = None) -> Optional[pd.DataFrame]:
        """Fetch the schedule feed; None when the service can't be used.

        Rows lacking a route or bus id are dropped. ``departure_time`` is
        parsed to UTC timestamps, unparseable values become NaT.
        """
        limit = limit or Config.FETCH_LIMIT
        logger.info(f"Fetching schedules from: {self._url('/api/schedules')}")
        payload = self._get_json("/api/schedules", params={"limit": limit})
        if payload is None:
            return None

        records = extract_records(payload, "schedules")
        if records is None:
            logger.warning("ScheduleService response did not contain a schedule list")
            return None

        df = self._standardize_schedule_data(records)
        logger.info(f"Loaded {len(df)} usable schedule entries from ScheduleService")
        return df

    def _standardize_schedule_data(self, records) -> pd.DataFrame:
        df = standardize_columns(records, self.column_mappings,
                                 required=["route_id", "bus_id"],
                                 optional=SCHEDULE_COLUMNS[2:])
        df["route_id"] = df["route_id"].astype(str)
        df["bus_id"] = df["bus_id"].astype(str)
        df["departure_time"] = pd.to_datetime(df["departure_time"], errors="coerce",
                                              utc=True, format="mixed")
        return df
