"""Google Sheets source for the style catalog."""

from dataclasses import dataclass
from urllib.parse import quote

import httpx

from style_bot.adapters.google_credentials import AccessTokenProvider
from style_bot.services.catalog import SourceUnavailableError, StyleRowSource

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"


@dataclass
class HttpxGoogleSheetsSource(StyleRowSource):
    """Reads style rows through the Sheets v4 values API.

    Requests are authorized with a service-account bearer token when a token
    provider is set, otherwise with the API key.
    """

    spreadsheet_id: str
    cell_range: str
    http_client: httpx.AsyncClient
    api_key: str | None = None
    token_provider: AccessTokenProvider | None = None
    base_url: str = SHEETS_BASE_URL

    @classmethod
    def create(
        cls,
        spreadsheet_id: str,
        cell_range: str,
        api_key: str | None = None,
        token_provider: AccessTokenProvider | None = None,
    ) -> "HttpxGoogleSheetsSource":
        """Create a sheets source with a managed httpx session."""
        if api_key is None and token_provider is None:
            raise ValueError("Sheets access needs an API key or service account")
        return cls(
            spreadsheet_id=spreadsheet_id,
            cell_range=cell_range,
            http_client=httpx.AsyncClient(),
            api_key=api_key,
            token_provider=token_provider,
        )

    async def fetch_rows(self) -> list[tuple[str, str, str]]:
        """Return (code, prompt, provider marker) rows in sheet order."""
        url = (
            f"{self.base_url}/{self.spreadsheet_id}/values/"
            f"{quote(self.cell_range, safe='')}"
        )
        params: dict[str, str] = {}
        headers: dict[str, str] = {}
        if self.token_provider is not None:
            token = await self.token_provider.access_token()
            headers["Authorization"] = f"Bearer {token}"
        elif self.api_key:
            params["key"] = self.api_key
        try:
            response = await self.http_client.get(
                url, params=params, headers=headers, timeout=30
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SourceUnavailableError(f"Sheets request failed: {exc}") from exc

        values = payload.get("values", []) if isinstance(payload, dict) else None
        if not isinstance(values, list):
            raise SourceUnavailableError("Sheets response has no values list")

        rows: list[tuple[str, str, str]] = []
        for row in values:
            if not isinstance(row, list):
                continue
            cells = [str(cell) for cell in row[:3]]
            cells += [""] * (3 - len(cells))
            rows.append((cells[0], cells[1], cells[2]))
        return rows

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
