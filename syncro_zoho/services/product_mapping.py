"""
Product mapping table: Syncro product id -> Zoho Books item.
"""

import logging
import os
from typing import Dict, Iterable, Optional

import pandas as pd

from syncro_zoho.exceptions import ConfigError
from syncro_zoho.models.sync_models import DEFAULT_PRODUCT_ID, ProductMapping

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("SourceProductID", "TargetItemID", "DisplayName", "IncludeDescription")


class ProductMappingTable:
    """
    Read-only lookup built once at start-up.

    At most one mapping is kept per SourceProductID: the first row wins and
    later duplicates (DEFAULT included) are logged and ignored.
    """

    def __init__(self, mappings: Iterable[ProductMapping] = ()):
        self._mappings: Dict[str, ProductMapping] = {}
        for mapping in mappings:
            existing = self._mappings.get(mapping.source_product_id)
            if existing is not None:
                logger.warning(
                    f"Duplicate mapping for product '{mapping.source_product_id}' ignored "
                    f"(keeping item {existing.target_item_id}, dropping item {mapping.target_item_id})"
                )
                continue
            self._mappings[mapping.source_product_id] = mapping

    def __len__(self):
        return len(self._mappings)

    @property
    def default(self) -> Optional[ProductMapping]:
        return self._mappings.get(DEFAULT_PRODUCT_ID)

    def resolve(self, source_product_id) -> Optional[ProductMapping]:
        """
        Find the mapping for a Syncro product id.

        Exact match first, then the DEFAULT row. Returns None only when the
        table has no DEFAULT row.
        """
        key = "" if source_product_id is None else str(source_product_id).strip()
        mapping = self._mappings.get(key)
        if mapping is not None:
            return mapping
        return self.default


def load_product_mappings(file_path) -> ProductMappingTable:
    """
    Read the product mapping CSV.

    Expected columns: SourceProductID, TargetItemID, DisplayName,
    IncludeDescription ("Yes" enables the line description, anything else
    disables it). One row must have SourceProductID "DEFAULT".

    Args:
        file_path: Path to the CSV file.

    Returns:
        ProductMappingTable

    Raises:
        ConfigError: If the file is missing, malformed, lacks a required
            column or has no DEFAULT row.
    """
    if not os.path.exists(file_path):
        raise ConfigError(f"Mapping file not found: {file_path}")

    try:
        df = pd.read_csv(
            file_path,
            header=0,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise ConfigError(f"Mapping file {file_path} is empty") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ConfigError(f"Mapping file {file_path} could not be parsed: {e}") from e

    # Normalize column names
    df.columns = df.columns.str.strip()

    missing = set(REQUIRED_COLUMNS) - set(df.columns)
    if missing:
        raise ConfigError(f"Mapping file {file_path} is missing columns: {', '.join(sorted(missing))}")

    mappings = []
    for line_number, row in enumerate(df.to_dict("records"), start=2):
        source_id = row["SourceProductID"].strip()
        target_id = row["TargetItemID"].strip()
        if not source_id and not target_id and not row["DisplayName"].strip():
            continue
        if not source_id or not target_id:
            logger.warning(f"Mapping file line {line_number} skipped: SourceProductID and TargetItemID are required")
            continue

        mappings.append(ProductMapping(
            source_product_id=source_id,
            target_item_id=target_id,
            display_name=row["DisplayName"].strip(),
            include_description=row["IncludeDescription"].strip() == "Yes",
        ))

    table = ProductMappingTable(mappings)
    if table.default is None:
        raise ConfigError(f"Mapping file {file_path} has no {DEFAULT_PRODUCT_ID} row")

    logger.info(f"Loaded {len(table)} product mappings from {file_path}")
    return table
