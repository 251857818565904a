"""
Match datasets for Bradley-Terry models.

Two observation types are supported:
- Individual matches: (player0, player1, y) with y = 1 when player1 won
- Team matches: (team0, team1, y) with J players per team, y = 1 when team1 won

Player indices are 1-based (1..K) at this interface, matching the JSON schema
read by load_dataset(). Models convert to 0-based arrays internally.
"""

from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd


class DatasetError(ValueError):
    """Raised when a match dataset violates the input contract."""


def _as_int_array(values, name: str, ndim: int) -> np.ndarray:
    arr = np.asarray(values)
    if arr.size == 0:
        shape = (0,) if ndim == 1 else (0, arr.shape[1] if arr.ndim == 2 else 0)
        return np.zeros(shape, dtype=np.int64)
    if arr.ndim != ndim:
        raise DatasetError(f"{name} must be {ndim}-dimensional, got shape {arr.shape}")
    if arr.dtype == bool:
        return arr.astype(np.int64)
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.issubdtype(arr.dtype, np.number) or not np.all(np.mod(arr, 1) == 0):
            raise DatasetError(f"{name} must contain integers")
    return arr.astype(np.int64)


def _check_count(value, name: str, minimum: int = 0) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, numbers.Real)
        or not np.isfinite(value)
        or int(value) != value
        or value < minimum
    ):
        raise DatasetError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return int(value)


def _check_outcomes(y: np.ndarray) -> None:
    if not np.all((y == 0) | (y == 1)):
        bad = np.unique(y[(y != 0) & (y != 1)])
        raise DatasetError(f"y must be 0 or 1, found {bad.tolist()}")


def _check_range(idx: np.ndarray, n_players: int, name: str) -> None:
    if idx.size and (idx.min() < 1 or idx.max() > n_players):
        raise DatasetError(
            f"{name} contains player indices outside 1..{n_players} "
            f"(min={idx.min()}, max={idx.max()})"
        )


@dataclass(frozen=True, eq=False)
class MatchDataset:
    """
    Individual paired-comparison outcomes.

    Attributes:
        n_players: Number of players K
        player0: Length-N array of first players (1-based)
        player1: Length-N array of second players (1-based)
        y: Length-N array, 1 if player1 won the match
    """

    n_players: int
    player0: np.ndarray
    player1: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        n_players = _check_count(self.n_players, "K")
        player0 = _as_int_array(self.player0, "player0", 1)
        player1 = _as_int_array(self.player1, "player1", 1)
        y = _as_int_array(self.y, "y", 1)

        if not len(player0) == len(player1) == len(y):
            raise DatasetError(
                f"player0, player1 and y must have equal length "
                f"(got {len(player0)}, {len(player1)}, {len(y)})"
            )
        _check_range(player0, n_players, "player0")
        _check_range(player1, n_players, "player1")
        _check_outcomes(y)

        self_matches = np.flatnonzero(player0 == player1)
        if len(self_matches):
            raise DatasetError(
                f"Players cannot face themselves (matches {(self_matches + 1).tolist()[:10]})"
            )

        for arr in (player0, player1, y):
            arr.setflags(write=False)

        object.__setattr__(self, "n_players", n_players)
        object.__setattr__(self, "player0", player0)
        object.__setattr__(self, "player1", player1)
        object.__setattr__(self, "y", y)

    @property
    def n_matches(self) -> int:
        return len(self.y)

    @property
    def is_team(self) -> bool:
        return False

    def sides(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (side0, side1) as N x 1 tables of 1-based player indices."""
        return self.player0[:, None], self.player1[:, None]

    def player_match_counts(self) -> np.ndarray:
        """Number of matches each player took part in (length K)."""
        counts = np.bincount(self.player0 - 1, minlength=self.n_players)
        counts += np.bincount(self.player1 - 1, minlength=self.n_players)
        return counts

    def subset(self, match_idx) -> "MatchDataset":
        """Dataset restricted to the given 0-based match positions."""
        match_idx = np.asarray(match_idx, dtype=np.int64)
        return MatchDataset(
            n_players=self.n_players,
            player0=self.player0[match_idx],
            player1=self.player1[match_idx],
            y=self.y[match_idx],
        )

    def to_dict(self) -> dict:
        return {
            "K": self.n_players,
            "N": self.n_matches,
            "player0": self.player0.tolist(),
            "player1": self.player1.tolist(),
            "y": self.y.tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MatchDataset":
        missing = {"K", "player0", "player1", "y"} - set(data)
        if missing:
            raise DatasetError(f"Missing fields: {sorted(missing)}")
        dataset = cls(
            n_players=data["K"],
            player0=data["player0"],
            player1=data["player1"],
            y=data["y"],
        )
        if "N" in data and _check_count(data["N"], "N") != dataset.n_matches:
            raise DatasetError(f"N={data['N']} but {dataset.n_matches} matches supplied")
        return dataset

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            "player0": self.player0,
            "player1": self.player1,
            "y": self.y,
        })

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, n_players: int | None = None) -> "MatchDataset":
        """Build from a frame with player0, player1 and y columns."""
        if n_players is None:
            n_players = int(max(df["player0"].max(), df["player1"].max())) if len(df) else 0
        return cls(
            n_players=n_players,
            player0=df["player0"].to_numpy(),
            player1=df["player1"].to_numpy(),
            y=df["y"].to_numpy(),
        )


@dataclass(frozen=True, eq=False)
class TeamMatchDataset:
    """
    Team paired-comparison outcomes.

    Team ability is the sum of its members' abilities.

    Attributes:
        n_players: Number of players K
        team_size: Players per team J
        team0: N x J table of first-team members (1-based)
        team1: N x J table of second-team members (1-based)
        y: Length-N array, 1 if team1 won the match
    """

    n_players: int
    team_size: int
    team0: np.ndarray
    team1: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        n_players = _check_count(self.n_players, "K")
        team_size = _check_count(self.team_size, "J", minimum=1)

        y = _as_int_array(self.y, "y", 1)
        team0 = np.asarray(self.team0)
        team1 = np.asarray(self.team1)
        if team0.size == 0 and team1.size == 0 and len(y) == 0:
            team0 = np.zeros((0, team_size), dtype=np.int64)
            team1 = np.zeros((0, team_size), dtype=np.int64)
        team0 = _as_int_array(team0, "team0", 2)
        team1 = _as_int_array(team1, "team1", 2)

        for name, team in (("team0", team0), ("team1", team1)):
            if team.shape != (len(y), team_size):
                raise DatasetError(
                    f"{name} must have shape ({len(y)}, {team_size}), got {team.shape}"
                )
            _check_range(team, n_players, name)
        _check_outcomes(y)

        both = np.concatenate([team0, team1], axis=1)
        sorted_rows = np.sort(both, axis=1)
        repeats = np.flatnonzero((np.diff(sorted_rows, axis=1) == 0).any(axis=1))
        if len(repeats):
            raise DatasetError(
                f"Teams must be disjoint with distinct members "
                f"(matches {(repeats + 1).tolist()[:10]})"
            )

        for arr in (team0, team1, y):
            arr.setflags(write=False)

        object.__setattr__(self, "n_players", n_players)
        object.__setattr__(self, "team_size", team_size)
        object.__setattr__(self, "team0", team0)
        object.__setattr__(self, "team1", team1)
        object.__setattr__(self, "y", y)

    @property
    def n_matches(self) -> int:
        return len(self.y)

    @property
    def is_team(self) -> bool:
        return True

    def sides(self) -> tuple[np.ndarray, np.ndarray]:
        return self.team0, self.team1

    def player_match_counts(self) -> np.ndarray:
        members = np.concatenate([self.team0.ravel(), self.team1.ravel()])
        return np.bincount(members - 1, minlength=self.n_players)

    def subset(self, match_idx) -> "TeamMatchDataset":
        match_idx = np.asarray(match_idx, dtype=np.int64)
        return TeamMatchDataset(
            n_players=self.n_players,
            team_size=self.team_size,
            team0=self.team0[match_idx],
            team1=self.team1[match_idx],
            y=self.y[match_idx],
        )

    def to_dict(self) -> dict:
        return {
            "K": self.n_players,
            "J": self.team_size,
            "N": self.n_matches,
            "team0": self.team0.tolist(),
            "team1": self.team1.tolist(),
            "y": self.y.tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TeamMatchDataset":
        missing = {"K", "J", "team0", "team1", "y"} - set(data)
        if missing:
            raise DatasetError(f"Missing fields: {sorted(missing)}")
        dataset = cls(
            n_players=data["K"],
            team_size=data["J"],
            team0=data["team0"],
            team1=data["team1"],
            y=data["y"],
        )
        if "N" in data and _check_count(data["N"], "N") != dataset.n_matches:
            raise DatasetError(f"N={data['N']} but {dataset.n_matches} matches supplied")
        return dataset

    def to_dataframe(self) -> pd.DataFrame:
        """One row per match, one column per team slot (team0_1..team0_J, ...)."""
        columns = {}
        for j in range(self.team_size):
            columns[f"team0_{j + 1}"] = self.team0[:, j]
        for j in range(self.team_size):
            columns[f"team1_{j + 1}"] = self.team1[:, j]
        columns["y"] = self.y
        return pd.DataFrame(columns)


Dataset = Union[MatchDataset, TeamMatchDataset]


def dataset_from_dict(data: dict) -> Dataset:
    """Build the right dataset type from a schema mapping (team if J present)."""
    if "J" in data:
        return TeamMatchDataset.from_dict(data)
    return MatchDataset.from_dict(data)


def load_dataset(path: Path | str) -> Dataset:
    """Load a dataset from a JSON file following the K/N/player0/player1/y schema."""
    path = Path(path)
    with open(path) as f:
        data = json.load(f)
    return dataset_from_dict(data)


def save_dataset(dataset: Dataset, path: Path | str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(dataset.to_dict(), f)
    return path
