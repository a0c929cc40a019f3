"""Data sources and the function set exposed to templates."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import parse_qs, urlsplit

import httpx
from pydantic import BaseModel, Field

from ..core.errors import DataSourceReadError, DataSourceSetupError
from .environment import build_env_functions
from .readers import ParseError, TEXT_TYPE, normalize_type, parse_payload, type_from_path

logger = logging.getLogger(__name__)

TIMEOUT = 30.0
SCHEMES = {"file", "env", "stdin", "http", "https"}


class DataSource(BaseModel):
    """A named, resolved data source reference."""

    alias: str = Field(..., min_length=1, description="Name used inside templates")
    scheme: str = Field(..., description="One of file, env, stdin, http, https")
    location: str = Field(..., description="Path, variable name or URL")
    content_type: str | None = Field(
        default=None, description="Explicit content type from the ?type= query"
    )


def parse_source(value: str) -> DataSource:
    """Parse ``alias=uri`` (or a bare path) into a data source.

    A bare path is aliased by its file name without extension.
    """
    if "=" in value:
        alias, raw = value.split("=", 1)
    else:
        alias, raw = Path(value).stem, value

    if not alias or not raw:
        raise DataSourceSetupError(f"Invalid data source reference: {value!r}")

    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    query = parse_qs(parts.query)
    content_type = query["type"][0] if "type" in query else None

    # Single-letter schemes are Windows drive letters, not URLs.
    if not scheme or len(scheme) == 1:
        return DataSource(
            alias=alias,
            scheme="file",
            location=parts.path if content_type else raw,
            content_type=content_type,
        )

    if scheme not in SCHEMES:
        raise DataSourceSetupError(
            f"Unsupported data source scheme {scheme!r} in {value!r}"
        )

    if scheme in {"http", "https"}:
        location = raw
    elif scheme == "env":
        location = (parts.netloc + parts.path).lstrip("/")
    else:
        location = parts.netloc + parts.path

    if scheme != "stdin" and not location:
        raise DataSourceSetupError(f"Data source {alias!r} has no location")

    return DataSource(
        alias=alias, scheme=scheme, location=location, content_type=content_type
    )


def parse_header(value: str) -> tuple[str, str, str]:
    """Parse ``alias=Name: value`` into (alias, name, value)."""
    if "=" not in value:
        raise DataSourceSetupError(
            f"Header must be ALIAS=NAME: VALUE, got: {value!r}"
        )
    alias, header = value.split("=", 1)
    if ":" not in header or not alias:
        raise DataSourceSetupError(
            f"Header must be ALIAS=NAME: VALUE, got: {value!r}"
        )
    name, header_value = header.split(":", 1)
    if not name.strip():
        raise DataSourceSetupError(f"Header name missing in {value!r}")
    return alias, name.strip(), header_value.strip()


class DataContext:
    """Holds the configured data sources and reads them on demand.

    Usage:
        data = DataContext.from_refs(["cfg=config.yaml"], [])
        functions = data.functions()
        ...
        data.cleanup()
    """

    def __init__(
        self,
        sources: Iterable[DataSource] = (),
        headers: dict[str, dict[str, str]] | None = None,
        *,
        timeout: float = TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self.sources: dict[str, DataSource] = {}
        for source in sources:
            self.sources[source.alias] = source
        self.headers = headers or {}
        self.timeout = timeout
        self._client = client
        self._cache: dict[str, tuple[str, str]] = {}

    @classmethod
    def from_refs(
        cls,
        refs: Iterable[str],
        header_refs: Iterable[str] = (),
        *,
        timeout: float = TIMEOUT,
        client: httpx.Client | None = None,
    ) -> DataContext:
        """Build a data context from raw CLI references.

        Args:
            refs: ``alias=uri`` data source references
            header_refs: ``alias=Name: value`` header overrides
            timeout: HTTP timeout in seconds
            client: Optional preconfigured HTTP client

        Returns:
            Data context ready to expose template functions
        """
        sources = [parse_source(ref) for ref in refs]

        headers: dict[str, dict[str, str]] = {}
        for header_ref in header_refs:
            alias, name, value = parse_header(header_ref)
            headers.setdefault(alias, {})[name] = value

        logger.debug(
            f"Configured {len(sources)} data source(s): "
            f"{[source.alias for source in sources]}"
        )
        return cls(sources, headers, timeout=timeout, client=client)

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def exists(self, alias: str) -> bool:
        return alias in self.sources

    def _source(self, alias: str) -> DataSource:
        source = self.sources.get(alias)
        if source is None:
            raise DataSourceReadError(f"Undefined data source {alias!r}")
        return source

    def _fetch(self, source: DataSource) -> tuple[str, str]:
        if source.scheme == "file":
            path = Path(source.location)
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise DataSourceReadError(
                    f"Cannot read data source {source.alias!r} from {path}: {e}"
                ) from e
            return text, source.content_type or type_from_path(source.location)

        if source.scheme == "env":
            value = os.environ.get(source.location)
            if value is None:
                raise DataSourceReadError(
                    f"Environment variable {source.location} for data source "
                    f"{source.alias!r} is not set"
                )
            return value, source.content_type or TEXT_TYPE

        if source.scheme == "stdin":
            return sys.stdin.read(), source.content_type or TEXT_TYPE

        headers = self.headers.get(source.alias, {})
        try:
            response = self.client.get(source.location, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DataSourceReadError(
                f"Cannot fetch data source {source.alias!r} from {source.location}: {e}"
            ) from e

        content_type = source.content_type or response.headers.get("content-type")
        if not content_type or normalize_type(content_type) == TEXT_TYPE:
            content_type = type_from_path(urlsplit(source.location).path)
        return response.text, content_type

    def read(self, alias: str) -> tuple[str, str]:
        """Return the raw text and content type of a data source (cached)."""
        if alias not in self._cache:
            source = self._source(alias)
            logger.debug(f"Reading data source {alias!r} ({source.scheme})")
            self._cache[alias] = self._fetch(source)
        return self._cache[alias]

    def datasource(self, alias: str) -> Any:
        """Return the parsed contents of a data source."""
        text, content_type = self.read(alias)
        try:
            return parse_payload(text, content_type)
        except ParseError as e:
            raise DataSourceReadError(f"Data source {alias!r}: {e}") from e

    def include(self, alias: str) -> str:
        """Return the unparsed contents of a data source."""
        text, _ = self.read(alias)
        return text

    def functions(self) -> dict[str, Any]:
        """Build the function set exposed to every template in the run."""
        functions = build_env_functions()
        functions.update(
            {
                "datasource": self.datasource,
                "ds": self.datasource,
                "datasource_exists": self.exists,
                "include": self.include,
            }
        )
        return functions

    def cleanup(self) -> None:
        """Release the HTTP client and drop cached payloads."""
        self._cache.clear()
        if self._client is not None:
            self._client.close()
            self._client = None
