from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx


logger = logging.getLogger(__name__)


@dataclass
class GeocodeConfig:
    base_url: str
    api_key: str | None
    timeout_seconds: int


def coordinates_label(lat: float, lng: float) -> str:
    return f'Lat: {lat}, Lng: {lng}'


class GeocodeAdapter:
    """Reverse geocoding used to turn recorder coordinates into a street address."""

    def __init__(self, cfg: GeocodeConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key and self.cfg.base_url)

    async def reverse(self, lat: float, lng: float) -> str:
        if not self.configured:
            raise RuntimeError('Missing GEOCODE_API_KEY')

        params = {'latlng': f'{lat},{lng}', 'key': str(self.cfg.api_key)}
        timeout = max(1, int(self.cfg.timeout_seconds))
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            response = await client.get(self.cfg.base_url, params=params)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            payload = {}
        results = payload.get('results')
        if payload.get('status') == 'OK' and isinstance(results, list) and results and isinstance(results[0], dict):
            address = str(results[0].get('formatted_address') or '').strip()
            if address:
                return address

        logger.info('Geocoding returned no address for %s,%s (status=%s)', lat, lng, payload.get('status'))
        return coordinates_label(lat, lng)
