from dataclasses import dataclass

from dailyload.fixed_width import ColumnSpec


@dataclass(frozen=True)
class EntityDescriptor:
    code: str
    extract_date_range: tuple[int, int]
    columns: tuple[ColumnSpec, ...] = ()
    extract_date_field: str | None = None
    staging_table: str | None = None
    transform_operations: tuple[str, ...] = ()

    @property
    def drop_filename(self) -> str:
        return self.code

    @property
    def data_filename(self) -> str:
        return f"{self.code}.dat"

    @property
    def bad_filename(self) -> str:
        return f"{self.code}.bad"

    @property
    def out_filename(self) -> str:
        return f"{self.code}.out"

    @property
    def log_filename(self) -> str:
        return f"load{self.code}.log"

    @property
    def has_processor(self) -> bool:
        return bool(self.columns and self.staging_table and self.extract_date_field)


E5_COLUMNS = (
    ColumnSpec("outputcd", 1, 2),
    ColumnSpec("empasgmtnum", 3, 10, "int"),
    ColumnSpec("empname", 11, 45),
    ColumnSpec("empgradecd", 46, 47),
    ColumnSpec("emptypecd", 48, 48),
    ColumnSpec("tourofduty", 49, 49),
    ColumnSpec("empworkarea", 50, 50),
    ColumnSpec("tpspodind", 51, 51),
    ColumnSpec("csupodind", 52, 52),
    ColumnSpec("parapodind", 53, 53),
    ColumnSpec("mngrpodind", 54, 54),
    ColumnSpec("empposittypecd", 55, 55),
    ColumnSpec("flexplaceind", 56, 56),
    ColumnSpec("empupdatedt", 57, 64, "date"),
    ColumnSpec("entextractdt", 65, 72, "date"),
    ColumnSpec("empidnum", 73, 82),
    ColumnSpec("emptitle", 83, 107),
    ColumnSpec("areacd", 108, 110, "int"),
    ColumnSpec("phone", 111, 117, "int"),
    ColumnSpec("ext", 118, 124, "int"),
    ColumnSpec("previd", 125, 132, "int"),
    ColumnSpec("seid", 133, 137),
    # 138-141 is filler in the E5 layout.
    ColumnSpec("email", 142, 186),
    ColumnSpec("icsacc", 187, 187),
    ColumnSpec("emppodcd", 188, 190),
    ColumnSpec("gs9cnt", 191, 194, "int"),
    ColumnSpec("gs11cnt", 195, 198, "int"),
    ColumnSpec("gs12cnt", 199, 202, "int"),
    ColumnSpec("gs13cnt", 203, 206, "int"),
)

E5_TRANSFORMS = (
    "e5_delete_null_keys",
    "e5_normalize_badge_ids",
    "e5_deactivate_employees",
    "e5_merge_entemp",
    "e5_backfill_unix",
    "e5_retire_inactive_positions",
    "e5_default_primary_roid",
    "e5_clear_entemp2",
    "e5_copy_entemp2",
)


ENTITY_DESCRIPTORS: dict[str, EntityDescriptor] = {
    "E5": EntityDescriptor(
        code="E5",
        extract_date_range=(65, 72),
        columns=E5_COLUMNS,
        extract_date_field="entextractdt",
        staging_table="e5tmp",
        transform_operations=E5_TRANSFORMS,
    ),
    "E3": EntityDescriptor(code="E3", extract_date_range=(3, 10)),
    "E8": EntityDescriptor(code="E8", extract_date_range=(28, 35)),
    "E7": EntityDescriptor(code="E7", extract_date_range=(78, 85)),
    "EB": EntityDescriptor(code="EB", extract_date_range=(48, 55)),
    # Weekly companion; only its ledger date is read.
    "E9": EntityDescriptor(code="E9", extract_date_range=(3, 10)),
}


def get_descriptor(code: str) -> EntityDescriptor:
    try:
        return ENTITY_DESCRIPTORS[code]
    except KeyError:
        raise ValueError(f"unknown entity code: {code}") from None


def descriptors_for(codes: tuple[str, ...] | list[str]) -> list[EntityDescriptor]:
    return [get_descriptor(code) for code in codes]
