from synergyforge.db.database import get_session, get_session_factory, init_db
from synergyforge.db.operations import (
    advance_checkpoint,
    association_to_model,
    card_to_model,
    checkpoint_to_model,
    claim_run,
    clear_associations,
    clear_checkpoints,
    count_associations,
    count_cards,
    count_cards_after,
    delete_card_associations,
    expire_stale_runs,
    fail_run,
    finish_run,
    get_active_run,
    get_association,
    get_association_stats,
    get_associations_among,
    get_associations_by_type,
    get_card,
    get_card_by_oracle_id,
    get_cards,
    get_cards_by_names,
    get_cards_in_chunk,
    get_cards_needing_encoding,
    get_checkpoint,
    get_encoded_cards,
    get_latest_checkpoint,
    get_neighbors,
    get_synergy_type_stats,
    get_top_associations,
    list_checkpoints,
    save_card_vector,
    search_cards,
    upsert_association,
    upsert_card,
)

__all__ = [
    "advance_checkpoint",
    "association_to_model",
    "card_to_model",
    "checkpoint_to_model",
    "claim_run",
    "clear_associations",
    "clear_checkpoints",
    "count_associations",
    "count_cards",
    "count_cards_after",
    "delete_card_associations",
    "expire_stale_runs",
    "fail_run",
    "finish_run",
    "get_active_run",
    "get_association",
    "get_association_stats",
    "get_associations_among",
    "get_associations_by_type",
    "get_card",
    "get_card_by_oracle_id",
    "get_cards",
    "get_cards_by_names",
    "get_cards_in_chunk",
    "get_cards_needing_encoding",
    "get_checkpoint",
    "get_encoded_cards",
    "get_latest_checkpoint",
    "get_neighbors",
    "get_session",
    "get_session_factory",
    "get_synergy_type_stats",
    "init_db",
    "list_checkpoints",
    "save_card_vector",
    "search_cards",
    "upsert_association",
    "upsert_card",
]
