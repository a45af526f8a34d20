from .registry import (
    CURRENT_LAYOUT_VERSION,
    CURRENT_RICE_VERSION,
    LAYOUT_MIGRATIONS,
    RICE_MIGRATIONS,
    MigrationStep,
    run_migrations,
)
from .layout import (
    migrate_layout,
    is_versioned_layout,
    extract_widgets,
    prepare_layout_for_storage,
    ensure_required_properties,
    fix_invalid_positions,
    remove_duplicates,
)
from .rice_scores import migrate_rice_scores
from .scales import map_reach_to_new_scale, map_impact_to_new_scale, map_effort_to_new_scale
