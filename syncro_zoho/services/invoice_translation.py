"""
Invoice translation: Syncro line items -> consolidated Zoho Books line items.

Everything here is pure. Each call builds its own working set, so nothing
leaks from one invoice into the next.
"""

import logging
from typing import Dict, Iterable, List, Optional

from syncro_zoho.models.sync_models import (
    ConsolidationKey,
    SourceLineItem,
    TargetLineItem,
)
from syncro_zoho.services.product_mapping import ProductMappingTable

logger = logging.getLogger(__name__)


def map_line_item(item: SourceLineItem, mapping_table: ProductMappingTable,
                  invoice_id: Optional[str] = None) -> Optional[TargetLineItem]:
    """
    Translate one Syncro line item.

    Returns:
        TargetLineItem, or None when no mapping (not even DEFAULT) applies.
    """
    mapping = mapping_table.resolve(item.product_id)
    if mapping is None:
        logger.warning(
            f"Invoice {invoice_id}: no mapping and no DEFAULT row for product '{item.product_id}' "
            f"({item.display_name}) - line item skipped"
        )
        return None

    return TargetLineItem(
        item_id=mapping.target_item_id,
        quantity=item.quantity,
        rate=item.unit_price,
        description=item.display_name if mapping.include_description else None,
    )


def consolidate_line_items(items: Iterable[TargetLineItem]) -> List[TargetLineItem]:
    """
    Merge line items sharing (item_id, description, rate) into one line with
    the summed quantity.

    The first line of each group is kept as the representative and groups
    come out in order of first appearance.
    """
    groups: Dict[ConsolidationKey, TargetLineItem] = {}
    for item in items:
        key = item.consolidation_key
        first = groups.get(key)
        if first is None:
            groups[key] = item
            continue
        groups[key] = TargetLineItem(
            item_id=first.item_id,
            quantity=first.quantity + item.quantity,
            rate=first.rate,
            description=first.description,
        )
    return list(groups.values())


def translate_line_items(source_items: Iterable[SourceLineItem], mapping_table: ProductMappingTable,
                         invoice_id: Optional[str] = None) -> List[TargetLineItem]:
    """
    Map every Syncro line item and consolidate the result.

    Args:
        source_items: Line items of one Syncro invoice.
        mapping_table: Product mappings.
        invoice_id: Only used in log messages.

    Returns:
        list[TargetLineItem]: Line items for one Zoho Books invoice.
    """
    source_items = list(source_items)
    mapped = []
    for item in source_items:
        target = map_line_item(item, mapping_table, invoice_id)
        if target is not None:
            mapped.append(target)

    consolidated = consolidate_line_items(mapped)
    logger.debug(
        f"Invoice {invoice_id}: {len(source_items)} source lines -> "
        f"{len(mapped)} mapped -> {len(consolidated)} consolidated"
    )
    return consolidated
