"""Static catalog of the supported games."""

from __future__ import annotations

from dataclasses import dataclass

from lotogen.errors import InvalidGameTypeError

SECONDARY_SUFFIX = "_mas"


@dataclass(frozen=True)
class GameDefinition:
    name: str
    label: str
    description: str
    domain_min: int
    domain_max: int
    draw_size: int
    has_secondary: bool = False
    secondary_min: int | None = None
    secondary_max: int | None = None

    def __post_init__(self) -> None:
        if self.draw_size > self.domain_size:
            raise ValueError(f"{self.name}: draw_size {self.draw_size} exceeds domain size {self.domain_size}")
        if self.has_secondary and (self.secondary_min is None or self.secondary_max is None):
            raise ValueError(f"{self.name}: secondary range required")

    @property
    def domain_size(self) -> int:
        return self.domain_max - self.domain_min + 1

    @property
    def secondary_scope(self) -> str:
        return f"{self.name}{SECONDARY_SUFFIX}"

    def scope(self, secondary: bool = False) -> str:
        return self.secondary_scope if secondary else self.name

    def scope_domain(self, secondary: bool = False) -> range:
        """Inclusive numeric domain of the main or secondary scope as a range."""

        if secondary:
            if not self.has_secondary:
                raise ValueError(f"{self.name} has no secondary number")
            return range(int(self.secondary_min), int(self.secondary_max) + 1)  # type: ignore[arg-type]
        return range(self.domain_min, self.domain_max + 1)


GAMES: dict[str, GameDefinition] = {
    game.name: game
    for game in (
        GameDefinition(
            name="leidsa",
            label="Leidsa",
            description="6 números del 1 al 40 + Más del 1 al 12",
            domain_min=1,
            domain_max=40,
            draw_size=6,
            has_secondary=True,
            secondary_min=1,
            secondary_max=12,
        ),
        GameDefinition(
            name="kino",
            label="Kino",
            description="10 números del 1 al 80",
            domain_min=1,
            domain_max=80,
            draw_size=10,
        ),
        GameDefinition(
            name="pale",
            label="Pale",
            description="2 números del 00 al 99",
            domain_min=0,
            domain_max=99,
            draw_size=2,
        ),
        GameDefinition(
            name="tripleta",
            label="Tripleta",
            description="3 números del 00 al 99",
            domain_min=0,
            domain_max=99,
            draw_size=3,
        ),
    )
}

GAME_TYPES: tuple[str, ...] = tuple(GAMES)


def get_game(game_type: str) -> GameDefinition:
    try:
        return GAMES[str(game_type).lower().strip()]
    except KeyError as exc:
        raise InvalidGameTypeError(
            game_type,
            details={"game_type": [f"Must be one of {'|'.join(GAME_TYPES)}"]},
        ) from exc


def list_games() -> list[GameDefinition]:
    return list(GAMES.values())
