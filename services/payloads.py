"""Helpers for turning collaborator JSON payloads into standardized frames."""
from typing import Any, Dict, Iterable, List, Optional
import pandas as pd

ENVELOPE_KEYS = ("data", "content", "items", "results")


def extract_records(payload: Any, *extra_keys: str) -> Optional[List[Dict]]:
    """Pull the record list out of a list or a paginated/enveloped response.

    Returns None when the payload is not something we understand, or when the
    service explicitly reports ``success: false``.
    """
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if not isinstance(payload, dict):
        return None
    if payload.get("success") is False:
        return None

    for key in ENVELOPE_KEYS + tuple(extra_keys):
        if key in payload:
            value = payload[key]
            if isinstance(value, list):
                return [r for r in value if isinstance(r, dict)]
            if isinstance(value, dict):
                # Nested pagination: {"data": {"content": [...]}}
                return extract_records(value, *extra_keys)
            if value is None:
                return []
            return None
    return None


def standardize_columns(records: List[Dict], column_mappings: Dict[str, str],
                        required: Iterable[str], optional: Iterable[str] = ()) -> pd.DataFrame:
    """Rename known field aliases onto canonical columns.

    The first alias present in the payload wins; later aliases only fill the
    rows where the canonical column is still empty. Values keep their JSON
    type, so integer ids next to nulls stay integers instead of floats.
    """
    df = pd.DataFrame(records, dtype=object)
    canonical = list(required) + list(optional)
    result = pd.DataFrame(index=df.index)

    for target in canonical:
        aliases = [alias for alias, name in column_mappings.items() if name == target]
        column = None
        for alias in aliases:
            if alias not in df.columns:
                continue
            column = df[alias] if column is None else column.where(column.notna(), df[alias])
        result[target] = column if column is not None else None

    # Treat empty strings as missing so the required filter drops them
    for col in canonical:
        blank = result[col].astype(str).str.strip() == ""
        result[col] = result[col].where(~blank, None)
    for col in required:
        result = result[result[col].notna()]

    return result.reset_index(drop=True)


def frame_to_records(df: pd.DataFrame) -> List[Dict]:
    """DataFrame rows as dicts with NaN/NaT replaced by None."""
    if df is None or df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict("records")
