"""
Document ledgers — the core half of BOM / RFP / proposal generation.

fetch snapshot → normalize legacy links → aggregate → totals.
Rendering (Excel/Word), upload and download links belong to the caller.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from .aggregator import aggregate_buildings, all_elements, proposal_only
from .catalog import CatalogLookup
from .config import settings
from .overlay import normalize_legacy_products
from .pricing_engine import PricingEngine
from .schemas import DocumentLedger, DocumentType, SurveySnapshot
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

DOCUMENT_TITLES = {
    DocumentType.BOM: "Bill of Materials",
    DocumentType.RFP: "Request for Proposal",
    DocumentType.PROPOSAL: "Infrastructure Proposal",
}

# BOM lists the whole site; RFP and proposal only what is being quoted
DOCUMENT_PREDICATES = {
    DocumentType.BOM: all_elements,
    DocumentType.RFP: proposal_only,
    DocumentType.PROPOSAL: proposal_only,
}


def normalize_snapshot(snapshot: SurveySnapshot) -> SurveySnapshot:
    """Applies the legacy product-link normalization to every building."""
    buildings = tuple(normalize_legacy_products(b) for b in snapshot.buildings)
    if all(new is old for new, old in zip(buildings, snapshot.buildings)):
        return snapshot
    return snapshot.model_copy(update={"buildings": buildings})


def build_document(snapshot: SurveySnapshot, document_type: Union[DocumentType, str],
                   catalog: CatalogLookup, company_name: Optional[str] = None,
                   currency: Optional[str] = None) -> DocumentLedger:
    document_type = DocumentType(document_type)
    snapshot = normalize_snapshot(snapshot)

    result = aggregate_buildings(
        snapshot.buildings,
        DOCUMENT_PREDICATES[document_type],
        snapshot.product_pricing,
        catalog,
        snapshot.service_pricing,
    )
    if result.skipped:
        logger.info("%s: %d catalog references skipped",
                    document_type.value, len(result.skipped))

    return DocumentLedger(
        document_type=document_type,
        title=DOCUMENT_TITLES[document_type],
        company_name=company_name or settings.COMPANY_NAME,
        currency=currency or settings.CURRENCY,
        line_items=result.line_items,
        skipped=result.skipped,
        summary=PricingEngine().summarize(result.line_items),
        generated_at=datetime.utcnow(),
    )


def generate_document(store: SnapshotStore, survey_id: str,
                      document_type: Union[DocumentType, str],
                      catalog: CatalogLookup) -> DocumentLedger:
    """Loads the stored snapshot and builds the ledger. Raises ValueError for unknown surveys."""
    snapshot = store.load(survey_id)
    if snapshot is None:
        raise ValueError(f"No saved snapshot for survey: {survey_id}")
    return build_document(snapshot, document_type, catalog)
