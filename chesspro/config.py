# chesspro/config.py
import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Defaults (centipawns)
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 320,
    "BISHOP": 330,
    "ROOK": 500,
    "QUEEN": 900,
    "KING": 0,
}

# Piece-square tables, indexed by python-chess square (A1 = 0, H8 = 63)
# from White's point of view. Black squares are mirrored before lookup.
PST_PAWN = [
      0,   0,   0,   0,   0,   0,   0,   0,
      5,  10,  10, -20, -20,  10,  10,   5,
      5,  -5, -10,   0,   0, -10,  -5,   5,
      0,   0,   0,  20,  20,   0,   0,   0,
      5,   5,  10,  25,  25,  10,   5,   5,
     10,  10,  20,  30,  30,  20,  10,  10,
     50,  50,  50,  50,  50,  50,  50,  50,
      0,   0,   0,   0,   0,   0,   0,   0,
]

PST_KNIGHT = [
    -50, -40, -30, -30, -30, -30, -40, -50,
    -40, -20,   0,   5,   5,   0, -20, -40,
    -30,   5,  10,  15,  15,  10,   5, -30,
    -30,   0,  15,  20,  20,  15,   0, -30,
    -30,   5,  15,  20,  20,  15,   5, -30,
    -30,   0,  10,  15,  15,  10,   0, -30,
    -40, -20,   0,   0,   0,   0, -20, -40,
    -50, -40, -30, -30, -30, -30, -40, -50,
]

PST_BISHOP = [
    -20, -10, -10, -10, -10, -10, -10, -20,
    -10,   5,   0,   0,   0,   0,   5, -10,
    -10,  10,  10,  10,  10,  10,  10, -10,
    -10,   0,  10,  10,  10,  10,   0, -10,
    -10,   5,   5,  10,  10,   5,   5, -10,
    -10,   0,   5,  10,  10,   5,   0, -10,
    -10,   0,   0,   0,   0,   0,   0, -10,
    -20, -10, -10, -10, -10, -10, -10, -20,
]

PST_ROOK = [
      0,   0,   0,   5,   5,   0,   0,   0,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
      5,  10,  10,  10,  10,  10,  10,   5,
      0,   0,   0,   0,   0,   0,   0,   0,
]

PST_QUEEN = [
    -20, -10, -10,  -5,  -5, -10, -10, -20,
    -10,   0,   5,   0,   0,   0,   0, -10,
    -10,   5,   5,   5,   5,   5,   0, -10,
      0,   0,   5,   5,   5,   5,   0,  -5,
     -5,   0,   5,   5,   5,   5,   0,  -5,
    -10,   0,   5,   5,   5,   5,   0, -10,
    -10,   0,   0,   0,   0,   0,   0, -10,
    -20, -10, -10,  -5,  -5, -10, -10, -20,
]

PST_KING = [
     20,  30,  10,   0,   0,  10,  30,  20,
     20,  20,   0,   0,   0,   0,  20,  20,
    -10, -20, -20, -20, -20, -20, -20, -10,
    -20, -30, -30, -40, -40, -30, -30, -20,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
]

# Endgame king: centralise.
PST_KING_EG = [
    -50, -30, -30, -30, -30, -30, -30, -50,
    -30, -30,   0,   0,   0,   0, -30, -30,
    -30, -10,  20,  30,  30,  20, -10, -30,
    -30, -10,  30,  40,  40,  30, -10, -30,
    -30, -10,  30,  40,  40,  30, -10, -30,
    -30, -10,  20,  30,  30,  20, -10, -30,
    -30, -20, -10,   0,   0, -10, -20, -30,
    -50, -40, -30, -20, -20, -30, -40, -50,
]


@dataclass(frozen=True)
class DifficultyLevel:
    id: str
    name: str
    depth: int
    description: str
    rating: str


DIFFICULTY_LEVELS: List[DifficultyLevel] = [
    DifficultyLevel("beginner", "Beginner", 1, "Learning the basics", "~400"),
    DifficultyLevel("easy", "Easy", 2, "Casual player", "~800"),
    DifficultyLevel("medium", "Medium", 3, "Club player level", "~1200"),
    DifficultyLevel("hard", "Hard", 4, "Strong tactics", "~1600"),
    DifficultyLevel("expert", "Expert", 5, "Near-master play", "~2000"),
]


@dataclass
class SearchConfig:
    default_depth: int = 3
    max_depth: int = 8
    hint_depth: int = 4
    stop_check_interval: int = 2048  # nodes between stop-flag checks
    default_difficulty: str = "medium"

    def difficulty(self, level_id: Optional[str]) -> DifficultyLevel:
        """Look up a difficulty level, falling back to the default one."""
        for level in DIFFICULTY_LEVELS:
            if level.id == level_id:
                return level
        for level in DIFFICULTY_LEVELS:
            if level.id == self.default_difficulty:
                return level
        return DIFFICULTY_LEVELS[2]


@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    pst: Dict[str, List[int]] = field(default_factory=lambda: {
        "PAWN": PST_PAWN, "KNIGHT": PST_KNIGHT, "BISHOP": PST_BISHOP,
        "ROOK": PST_ROOK, "QUEEN": PST_QUEEN, "KING": PST_KING,
    })
    king_endgame_pst: List[int] = field(default_factory=lambda: list(PST_KING_EG))
    mobility_weights: Dict[str, int] = field(default_factory=lambda: {
        "KNIGHT": 4, "BISHOP": 4, "ROOK": 2, "QUEEN": 1
    })
    king_safety_weights: Dict[str, int] = field(default_factory=lambda: {
        "missing_shield": 15, "lost_castling": 30
    })
    pawn_structure_weights: Dict[str, int] = field(default_factory=lambda: {
        "doubled_penalty": -15, "isolated_penalty": -12
    })
    passed_pawn_bonus: List[int] = field(default_factory=lambda: [0, 5, 10, 20, 35, 60, 100, 0])
    bishop_pair_bonus: int = 30


@dataclass
class WorkerConfig:
    processes: int = 1


@dataclass
class ApiConfig:
    title: str = "ChessPro"
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "chesspro.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "worker", "api"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if not hasattr(target, k):
                    continue
                current = getattr(target, k)
                # Tables are merged so a partial override keeps the other keys.
                if isinstance(current, dict) and isinstance(v, dict):
                    current.update(v)
                else:
                    setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root handler once; later calls only adjust the level."""
    level = (level or CONFIG.log_level).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        root.setLevel(level)


# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("CHESSPRO_CONFIG_TOML", "chesspro.toml"))
# env overrides for quick debugging
override_depth = os.environ.get("CHESSPRO_SEARCH_DEPTH")
if override_depth and override_depth.isdigit() and int(override_depth) > 0:
    CONFIG.search.default_depth = int(override_depth)
if os.environ.get("CHESSPRO_LOG_LEVEL"):
    CONFIG.log_level = os.environ["CHESSPRO_LOG_LEVEL"]
