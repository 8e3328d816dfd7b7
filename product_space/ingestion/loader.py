"""
product_space/ingestion/loader.py — Flat-file loader for Atlas datasets.

Reads the four input tables used by the pipeline:

    proximity           product_a, product_b, proximity
    product metadata    code, name, [pci, export_value, section]
    country exports     location, product, export_value, rca
    country indicators  location, [name], eci, ...

Each loader first makes sure the file exists locally, downloading it from a
fixed URL if it is absent. Column names used by the Atlas of Economic
Complexity downloads are renamed to the canonical names above.

Failure policy: none of these errors are recovered. A failed download raises
DatasetDownloadError; a missing or mistyped column, or a blank cell in the
proximity table, raises DatasetSchemaError. Both chain the native urllib /
pandas exception where there is one. There is no retry.

Uses Python stdlib (urllib.request) for HTTP and pandas for parsing.
"""

import logging
import os
import shutil
import urllib.error
import urllib.request
from typing import Optional

import pandas as pd

from product_space.config import DEFAULT_CONFIG, ProductSpaceConfig

logger = logging.getLogger(__name__)

USER_AGENT = "product-space/0.1 (+https://atlas.cid.harvard.edu)"

PROXIMITY_ALIASES = {
    "commoditycode_1": "product_a",
    "commoditycode_2": "product_b",
    "product_1": "product_a",
    "product_2": "product_b",
    "prod1": "product_a",
    "prod2": "product_b",
    "phi": "proximity",
    "weight": "proximity",
}

PRODUCT_ALIASES = {
    "hs_product_code": "code",
    "commoditycode": "code",
    "product_code": "code",
    "hs_product_name_short_en": "name",
    "product_name": "name",
    "name_short_en": "name",
    "product_complexity_index": "pci",
    "parent_name": "section",
    "section_name": "section",
}

EXPORT_ALIASES = {
    "location_code": "location",
    "country": "location",
    "hs_product_code": "product",
    "product_code": "product",
    "export_rca": "rca",
}

INDICATOR_ALIASES = {
    "location_code": "location",
    "country": "location",
    "location_name_short_en": "name",
    "hs_eci": "eci",
}


class ProductSpaceError(Exception):
    """Base class for all product_space errors."""


class DatasetDownloadError(ProductSpaceError):
    """Remote fetch of a dataset failed."""


class DatasetSchemaError(ProductSpaceError):
    """A dataset is missing a required column or a column has the wrong type."""


# ── Retrieval ─────────────────────────────────────────────────────────────────

def ensure_local(path: str, url: Optional[str], timeout: int = 60) -> str:
    """
    Make sure `path` exists, downloading `url` to it if needed.

    The body is streamed into `<path>.part` and renamed into place once the
    transfer completes, so an interrupted download never masquerades as a
    cached dataset on the next run.

    Args:
        path:    Local destination.
        url:     Source URL. If None and the file is missing, FileNotFoundError.
        timeout: Socket timeout in seconds.

    Returns:
        The local path (unchanged).

    Raises:
        DatasetDownloadError: The HTTP request failed.
        FileNotFoundError:    The file is absent and no URL was given.
    """
    if os.path.isfile(path):
        logger.debug("Using cached dataset: %s", path)
        return path

    if not url:
        raise FileNotFoundError(f"Dataset not found and no download URL configured: {path}")

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    partial = path + ".part"

    logger.info("Downloading %s -> %s", url, path)
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(partial, "wb") as fh:
            shutil.copyfileobj(resp, fh)
    except urllib.error.HTTPError as exc:
        _discard(partial)
        raise DatasetDownloadError(f"HTTP {exc.code} fetching {url}: {exc.reason}") from exc
    except urllib.error.URLError as exc:
        _discard(partial)
        raise DatasetDownloadError(f"Network error fetching {url}: {exc.reason}") from exc
    except OSError as exc:
        _discard(partial)
        raise DatasetDownloadError(f"I/O error fetching {url}: {exc}") from exc

    os.replace(partial, path)
    logger.info("Saved %s (%d bytes).", path, os.path.getsize(path))
    return path


def _discard(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


# ── Parsing ───────────────────────────────────────────────────────────────────

def _separator_for(path: str) -> Optional[str]:
    """Tab for .tsv/.tab files, comma for .csv, sniffed otherwise."""
    suffix = os.path.splitext(path)[1].lower()
    if suffix in (".tsv", ".tab"):
        return "\t"
    if suffix == ".csv":
        return ","
    return None


def read_table(
    path: str,
    required_columns: list[str],
    dtypes: dict[str, str],
    aliases: Optional[dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Read a delimited text table and enforce its column contract.

    Args:
        path:             Local .csv / .tsv file.
        required_columns: Canonical columns that must be present.
        dtypes:           Canonical column → pandas dtype. "str" columns are read
                          as text so that product codes keep leading zeros.
        aliases:          Source column name → canonical name.

    Returns:
        DataFrame with canonical column names and coerced dtypes.

    Raises:
        DatasetSchemaError: A required column is missing or cannot be coerced.
    """
    aliases = aliases or {}
    sep = _separator_for(path)
    read_kwargs = {"sep": sep} if sep else {"sep": None, "engine": "python"}

    # Read every identifier-like column as text before coercion.
    text_columns = {c for c, t in dtypes.items() if t == "str"}
    text_columns |= {src for src, dst in aliases.items() if dst in text_columns}

    logger.info("Reading table: %s", path)
    df = pd.read_csv(path, dtype={c: str for c in text_columns}, **read_kwargs)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns={c: aliases[c.lower()] for c in df.columns
                            if c.lower() in aliases and aliases[c.lower()] not in df.columns})

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise DatasetSchemaError(
            f"{path}: missing required column(s) {missing}; found {list(df.columns)}"
        )

    for column, dtype in dtypes.items():
        if column not in df.columns:
            continue
        try:
            if dtype == "str":
                text = df[column].astype(str).str.strip()
                df[column] = text.where(df[column].notna(), None)
            else:
                df[column] = pd.to_numeric(df[column], errors="raise").astype(dtype)
        except (ValueError, TypeError) as exc:
            raise DatasetSchemaError(
                f"{path}: column '{column}' cannot be read as {dtype}: {exc}"
            ) from exc

    logger.debug("Loaded %d rows x %d columns from %s", len(df), len(df.columns), path)
    return df


# ── Dataset loaders ───────────────────────────────────────────────────────────

def load_proximity_table(
    path: str,
    url: Optional[str] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Load the pairwise product proximity table.

    Returns:
        DataFrame [product_a: str, product_b: str, proximity: float].
        Duplicates and self pairs are *not* removed here; see
        product_space.graph.builder.deduplicate_edges().

    Raises:
        DatasetDownloadError, DatasetSchemaError
    """
    ensure_local(path, url, timeout=config.download_timeout)
    df = read_table(
        path,
        required_columns=["product_a", "product_b", "proximity"],
        dtypes={"product_a": "str", "product_b": "str", "proximity": "float64"},
        aliases=PROXIMITY_ALIASES,
    )
    df = df[["product_a", "product_b", "proximity"]]

    incomplete = df[df.isna().any(axis=1)]
    if len(incomplete) > 0:
        raise DatasetSchemaError(
            f"{path}: {len(incomplete)} row(s) with a missing product code or proximity, "
            f"e.g. {incomplete.iloc[0].to_dict()}"
        )

    out_of_range = df[(df["proximity"] < 0.0) | (df["proximity"] > 1.0)]
    if len(out_of_range) > 0:
        raise DatasetSchemaError(
            f"{path}: {len(out_of_range)} proximity value(s) outside [0, 1], "
            f"e.g. {out_of_range.iloc[0].to_dict()}"
        )
    return df.reset_index(drop=True)


def load_product_metadata(
    path: str,
    url: Optional[str] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Load product metadata: code, display name and optional indicators.

    Returns:
        DataFrame [code: str, name: str, (pci: float), (export_value: float),
        (section: str)]. First row wins when a code is repeated.
    """
    ensure_local(path, url, timeout=config.download_timeout)
    df = read_table(
        path,
        required_columns=["code", "name"],
        dtypes={
            "code": "str",
            "name": "str",
            "section": "str",
            "pci": "float64",
            "export_value": "float64",
        },
        aliases=PRODUCT_ALIASES,
    )
    keep = [c for c in ("code", "name", "pci", "export_value", "section") if c in df.columns]
    return df[keep].drop_duplicates(subset="code", keep="first").reset_index(drop=True)


def load_country_exports(
    path: str,
    url: Optional[str] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Load country × product export records.

    Returns:
        DataFrame [location: str, product: str, export_value: float, rca: float]
        plus any extra columns present (e.g. year).
    """
    ensure_local(path, url, timeout=config.download_timeout)
    df = read_table(
        path,
        required_columns=["location", "product", "export_value", "rca"],
        dtypes={"location": "str", "product": "str", "export_value": "float64", "rca": "float64"},
        aliases=EXPORT_ALIASES,
    )
    return df


def load_country_indicators(
    path: str,
    url: Optional[str] = None,
    config: ProductSpaceConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Load country-level indicators (ECI and friends) keyed by ISO-3 code.

    Returns:
        DataFrame [location: str, eci: float, ...]. `name` is kept if present.
    """
    ensure_local(path, url, timeout=config.download_timeout)
    df = read_table(
        path,
        required_columns=["location", "eci"],
        dtypes={"location": "str", "name": "str", "eci": "float64"},
        aliases=INDICATOR_ALIASES,
    )
    df["location"] = df["location"].str.upper()
    return df


def restrict_metadata(metadata: pd.DataFrame, proximity: pd.DataFrame) -> pd.DataFrame:
    """
    Drop metadata rows for products that no proximity edge references.

    Self pairs do not count as references: build_proximity_graph() drops
    them, so a product seen only in a self pair never becomes a node.

    Args:
        metadata:  Output of load_product_metadata().
        proximity: Output of load_proximity_table().

    Returns:
        Filtered copy of metadata, original row order preserved.
    """
    edges = proximity[proximity["product_a"] != proximity["product_b"]]
    referenced = set(edges["product_a"]) | set(edges["product_b"])
    kept = metadata[metadata["code"].isin(referenced)].reset_index(drop=True)
    dropped = len(metadata) - len(kept)
    if dropped:
        logger.info("Dropped %d metadata rows for products without proximity edges.", dropped)
    return kept
