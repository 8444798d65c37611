"""Named, parametrised SQL operations run by the entity processors.

A deployment can override or add operations by dropping ``<name>.sql`` files
into the configured SQL directory; each file holds a single statement with
optional ``:name`` bind parameters.
"""

import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dailyload.errors import TransformExecutionFailure


logger = logging.getLogger(__name__)


_E5_MERGE_COLUMNS = (
    ("name", "empname"),
    ("grade", "empgradecd"),
    ("type", "emptypecd"),
    ("badge", "empidnum"),
    ("title", "emptitle"),
    ("areacd", "areacd"),
    ("phone", "phone"),
    ("ext", "ext"),
    ("email", "email"),
    ("postype", "empposittypecd"),
    ("area", "empworkarea"),
    ("tour", "tourofduty"),
    ("podind", "mngrpodind"),
    ("tpsind", "tpspodind"),
    ("csuind", "csupodind"),
    ("aideind", "parapodind"),
    ("flexind", "flexplaceind"),
    ("empdt", "empupdatedt"),
    ("previd", "previd"),
    ("icsacc", "icsacc"),
    ("extrdt", "entextractdt"),
    ("podcd", "emppodcd"),
    ("gs9cnt", "gs9cnt"),
    ("gs11cnt", "gs11cnt"),
    ("gs12cnt", "gs12cnt"),
    ("gs13cnt", "gs13cnt"),
)


_ENTEMP_COLUMNS = (
    "id",
    "roid",
    "seid",
    *(target for target, _ in _E5_MERGE_COLUMNS),
    "eactive",
    "unix",
    "elevel",
    "primary_roid",
)


def _e5_merge_sql() -> str:
    target_columns = ", ".join(target for target, _ in _E5_MERGE_COLUMNS)
    source_columns = ", ".join(source for _, source in _E5_MERGE_COLUMNS)
    updates = ", ".join(f"{target} = excluded.{target}" for target, _ in _E5_MERGE_COLUMNS)
    return (
        f"INSERT INTO entemp (roid, seid, {target_columns}, eactive) "
        f"SELECT CAST(empasgmtnum AS VARCHAR(8)), COALESCE(NULLIF(seid, ''), '00000'), {source_columns}, 'Y' "
        "FROM e5tmp "
        "WHERE empasgmtnum IS NOT NULL AND CAST(empasgmtnum AS VARCHAR(8)) NOT LIKE '85%' "
        f"ON CONFLICT (roid, seid) DO UPDATE SET {updates}, eactive = 'Y'"
    )


BUILTIN_OPERATIONS: dict[str, str] = {
    "e5_delete_null_keys": "DELETE FROM e5tmp WHERE empasgmtnum IS NULL",
    "e5_normalize_badge_ids": "UPDATE e5tmp SET empidnum = '99-999999' WHERE empidnum = '-'",
    "e5_deactivate_employees": "UPDATE entemp SET eactive = 'N' WHERE roid NOT LIKE '85%'",
    "e5_merge_entemp": _e5_merge_sql(),
    "e5_backfill_unix": (
        "UPDATE entemp SET unix = ("
        "SELECT b.unix FROM entemp b WHERE b.seid = entemp.seid AND b.unix IS NOT NULL LIMIT 1"
        ") "
        "WHERE eactive IN ('Y', 'A') AND seid NOT IN ('99999', '00000', '44444') "
        "AND seid IS NOT NULL AND unix IS NULL"
    ),
    "e5_retire_inactive_positions": (
        "UPDATE entemp SET postype = 'B', elevel = -2 WHERE eactive = 'N' AND postype NOT IN ('B', 'V')"
    ),
    "e5_default_primary_roid": "UPDATE entemp SET primary_roid = 'N' WHERE primary_roid IS NULL",
    "e5_clear_entemp2": "DELETE FROM entemp2",
    "e5_copy_entemp2": (
        f"INSERT INTO entemp2 ({', '.join(_ENTEMP_COLUMNS)}) SELECT {', '.join(_ENTEMP_COLUMNS)} FROM entemp"
    ),
}


class SqlOperationExecutor:
    def __init__(
        self,
        db: Session,
        *,
        sql_dir: Path | None = None,
        operations: dict[str, str] | None = None,
    ) -> None:
        self.db = db
        self.sql_dir = sql_dir
        self.operations = BUILTIN_OPERATIONS if operations is None else operations

    def resolve(self, name: str) -> str:
        if self.sql_dir is not None:
            path = self.sql_dir / f"{name}.sql"
            if path.exists():
                return path.read_text(encoding="utf-8").strip().rstrip(";")
        try:
            return self.operations[name]
        except KeyError:
            raise TransformExecutionFailure(f"unknown SQL operation '{name}'") from None

    def run(self, name: str, params: dict[str, object] | None = None) -> int:
        sql = self.resolve(name)
        # Only pass the binds the statement actually names.
        bound = {key: value for key, value in (params or {}).items() if f":{key}" in sql}
        try:
            result = self.db.execute(text(sql), bound)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise TransformExecutionFailure(f"SQL operation '{name}' failed: {exc}") from exc

        logger.debug("sql operation executed", extra={"operation": name, "rowcount": result.rowcount})
        return result.rowcount
