"""Bus inventory client for fetching bus data from the BusService API."""
from typing import Dict, Optional
import pandas as pd
import requests
from loguru import logger

from configurations.config import Config
from services.http_client import ServiceClient
from services.payloads import extract_records, standardize_columns

BUS_COLUMNS = ["id", "plate", "capacity", "model"]


class BusService(ServiceClient):
    service_name = "BusService"

    # Common column mappings
    column_mappings = {
        'id': 'id',
        'uuid': 'id',
        'busId': 'id',
        'bus_id': 'id',
        'plate': 'plate',
        'plateNumber': 'plate',
        'plate_number': 'plate',
        'registration': 'plate',
        'registrationNumber': 'plate',
        'capacity': 'capacity',
        'seatCapacity': 'capacity',
        'seats': 'capacity',
        'model': 'model',
        'busModel': 'model',
        'type': 'model',
    }

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url or Config.BUS_SERVICE_URL,
                         timeout or Config.BUS_SERVICE_TIMEOUT, session)

    def list_buses(self, limit: Optional[int] = None) -> Optional[pd.DataFrame]:
        """Fetch buses in listing order; None when the service can't be used."""
        limit = limit or Config.FETCH_LIMIT
        logger.info(f"Fetching buses from: {self._url('/api/buses')}")
        payload = self._get_json("/api/buses", params={"limit": limit})
        if payload is None:
            return None

        records = extract_records(payload, "buses")
        if records is None:
            logger.warning("BusService response did not contain a bus list")
            return None

        df = self._standardize_bus_data(records)
        logger.info(f"Loaded {len(df)} buses from BusService")
        return df

    def get_bus_by_id(self, bus_id: str) -> Optional[Dict]:
        """Get a specific bus; None when not found or the service is down."""
        if not bus_id:
            return None
        payload = self._get_json(f"/api/buses/{bus_id}")
        if not isinstance(payload, dict) or payload.get("success") is False:
            return None
        data = payload.get("data", payload)
        if not isinstance(data, dict):
            return None
        df = self._standardize_bus_data([data])
        return df.iloc[0].to_dict() if len(df) else None

    def _standardize_bus_data(self, records) -> pd.DataFrame:
        """Standardize bus payload field names; rows without an id are dropped."""
        return standardize_columns(records, self.column_mappings,
                                   required=["id"], optional=BUS_COLUMNS[1:])
