"""
Registry de migrations.
Todas as migrations devem ser importadas e registradas aqui.
"""
from typing import List, Optional, Sequence, Type

from .base import CatalogError, Migration

# IMPORTANTE: Sempre importar na ordem correta (001, 002, 003...)
from .m001_initial_schema import Migration001_InitialSchema
from .m002_add_role_to_users import Migration002_AddRoleToUsers
from .m003_rbac_site_scoping import Migration003_RbacSiteScoping
from .m004_site_locations import Migration004_SiteLocations
from .m005_cable_types import Migration005_CableTypes
from .m006_add_username_to_users import Migration006_AddUsernameToUsers
from .m007_normalize_legacy_roles import Migration007_NormalizeLegacyRoles
from .m008_site_location_label_key import Migration008_SiteLocationLabelKey
from .m009_user_activity import Migration009_UserActivity
from .m010_activity_log import Migration010_ActivityLog
from .m011_password_reset_tokens import Migration011_PasswordResetTokens
from .m012_sid_index import Migration012_SidIndex
from .m013_site_counters_next_sid import Migration013_SiteCountersNextSid
from .m014_add_username_to_invitations import Migration014_AddUsernameToInvitations
from .m015_normalize_site_location_labels import Migration015_NormalizeSiteLocationLabels
from .m016_site_location_templates import Migration016_SiteLocationTemplates
from .m017_drop_site_location_name import Migration017_DropSiteLocationName
from .m018_sid_notes_pins import Migration018_SidNotesPins
from .m019_sid_cpu_models import Migration019_SidCpuModels
from .m020_sid_rack_u import Migration020_SidRackU
from .m021_sid_platforms import Migration021_SidPlatforms
from .m022_sid_history_passwords import Migration022_SidHistoryPasswords
from .m023_sid_rack_u_ram_types import Migration023_SidRackURamTypes
from .m024_sid_remove_asset_tag import Migration024_SidRemoveAssetTag
from .m025_sid_status_picklist import Migration025_SidStatusPicklist
from .m026_sid_password_types import Migration026_SidPasswordTypes


# Lista de migrations em ordem (IMPORTANTE: nunca renumerar nem reordenar)
MIGRATIONS: List[Type[Migration]] = [
    Migration001_InitialSchema,
    Migration002_AddRoleToUsers,
    Migration003_RbacSiteScoping,
    Migration004_SiteLocations,
    Migration005_CableTypes,
    Migration006_AddUsernameToUsers,
    Migration007_NormalizeLegacyRoles,
    Migration008_SiteLocationLabelKey,
    Migration009_UserActivity,
    Migration010_ActivityLog,
    Migration011_PasswordResetTokens,
    Migration012_SidIndex,
    Migration013_SiteCountersNextSid,
    Migration014_AddUsernameToInvitations,
    Migration015_NormalizeSiteLocationLabels,
    Migration016_SiteLocationTemplates,
    Migration017_DropSiteLocationName,
    Migration018_SidNotesPins,
    Migration019_SidCpuModels,
    Migration020_SidRackU,
    Migration021_SidPlatforms,
    Migration022_SidHistoryPasswords,
    Migration023_SidRackURamTypes,
    Migration024_SidRemoveAssetTag,
    Migration025_SidStatusPicklist,
    Migration026_SidPasswordTypes,
]


def validate_catalog(migrations: Sequence[Type[Migration]]) -> None:
    """Garante ids únicos e estritamente crescentes, na ordem do catálogo."""
    previous: Optional[str] = None
    for migration_class in migrations:
        migration_id = getattr(migration_class, "id", None)
        if not migration_id or not getattr(migration_class, "name", None):
            raise CatalogError(f"{migration_class.__name__} sem id ou name")
        if previous is not None:
            if migration_id == previous:
                raise CatalogError(f"Migration {migration_id} duplicada")
            if _sort_key(migration_id) <= _sort_key(previous):
                raise CatalogError(f"Migration {migration_id} fora de ordem (depois de {previous})")
        previous = migration_id


def _sort_key(migration_id: str):
    if migration_id.isdigit():
        return (0, int(migration_id), migration_id)
    return (1, 0, migration_id)


validate_catalog(MIGRATIONS)

LATEST_MIGRATION_ID: str = MIGRATIONS[-1].id


def get_migration_by_id(migration_id: str) -> Type[Migration] | None:
    """Encontra uma migration pelo id"""
    for migration_class in MIGRATIONS:
        if migration_class.id == migration_id:
            return migration_class
    return None


def get_all_migrations() -> List[Type[Migration]]:
    """Retorna todas as migrations em ordem"""
    return MIGRATIONS.copy()
