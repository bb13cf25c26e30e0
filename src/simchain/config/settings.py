from __future__ import annotations

from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early if present (no-op if missing)
load_dotenv()

TimeUnit = Literal["s", "yr", "kyr", "Myr", "Gyr"]


class CascadeKeys(BaseModel):
    # parameter names injected into every cascade stage
    input_paths: str = "input/paths"
    final_time: str = "simulation/final_time"
    scale_factor: str = "cosmology/a"
    hubble_param: str = "cosmology/h"

    def all(self) -> tuple[str, ...]:
        return (self.input_paths, self.final_time, self.scale_factor, self.hubble_param)


class TimeSettings(BaseModel):
    unit: TimeUnit = "kyr"
    # snapshot header `Time` -> seconds, non-comoving runs only
    snapshot_time_in_s: float = Field(1.0, gt=0.0)
    year_in_s: float = Field(3.156e7, gt=0.0)


class SnapshotLayout(BaseModel):
    header_group: str = "Header"
    coordinates: str = "PartType0/Coordinates"
    abundances: str = "PartType0/ChemicalAbundances"
    energies: str = "PartType0/InternalEnergy"
    suffix: str = ".hdf5"
    snapshot_glob: str = "snap_*.hdf5"


class RemapSettings(BaseModel):
    leaf_size: int = Field(8, ge=1)
    # at or below this many (reference x target) pairs the naive search is used
    brute_force_max_pairs: int = Field(4096, ge=0)


class SimChainSettings(BaseSettings):
    """
    Top-level typed settings for SimChain.
    Loads from environment and .env automatically.
    Override with env vars like:
        SIMCHAIN__TIME__UNIT=Myr
        SIMCHAIN__REMAP__LEAF_SIZE=16
    (note the double-underscore for nesting)
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="SIMCHAIN__",
        extra="ignore",
    )

    cascade_keys: CascadeKeys = CascadeKeys()
    time: TimeSettings = TimeSettings()
    snapshot: SnapshotLayout = SnapshotLayout()
    remap: RemapSettings = RemapSettings()

    def to_params_dict(self) -> dict:
        """Emit a plain dict (recorded next to dumped stages)."""
        return {
            "cascade_keys": self.cascade_keys.model_dump(),
            "time": self.time.model_dump(),
            "snapshot": self.snapshot.model_dump(),
            "remap": self.remap.model_dump(),
        }
