"""Business logic for generating lottery combinations."""

from __future__ import annotations

import random
from dataclasses import dataclass

from lotogen.errors import InvalidOptionsError, ValidationError
from lotogen.services.game_catalog import GameDefinition, get_game


@dataclass(frozen=True)
class DrawOptions:
    include_secondary: bool = False
    secondary_only: bool = False


@dataclass(frozen=True)
class Draw:
    game_type: str
    main_numbers: tuple[int, ...]
    secondary_number: int | None = None


def validate_options(game: GameDefinition, options: DrawOptions) -> None:
    if options.include_secondary and options.secondary_only:
        raise InvalidOptionsError(
            message="include_secondary and secondary_only are mutually exclusive",
            details={"secondary_only": ["Cannot be combined with include_secondary"]},
        )
    if (options.include_secondary or options.secondary_only) and not game.has_secondary:
        raise InvalidOptionsError(
            message=f"{game.label} has no Más number",
            details={"game_type": [f"{game.name} does not support a secondary number"]},
        )


def validate_draw(game: GameDefinition, draw: Draw) -> None:
    """Check a draw against the game's rules before it is persisted."""

    if draw.game_type != game.name:
        raise ValidationError(
            message="Draw does not belong to this game",
            details={"game_type": [f"Expected {game.name}, got {draw.game_type}"]},
        )

    numbers = [int(n) for n in draw.main_numbers]
    secondary_only = not numbers

    if secondary_only and draw.secondary_number is None:
        raise ValidationError(
            message="Empty draw",
            details={"main_numbers": ["A draw needs main numbers or a Más number"]},
        )
    if not secondary_only:
        if len(numbers) != game.draw_size:
            raise ValidationError(
                message="Invalid main numbers",
                details={"main_numbers": [f"Must contain exactly {game.draw_size} numbers"]},
            )
        if any(n < game.domain_min or n > game.domain_max for n in numbers):
            raise ValidationError(
                message="Invalid main numbers",
                details={"main_numbers": [f"All numbers must be within {game.domain_min}..{game.domain_max}"]},
            )
        if len(set(numbers)) != len(numbers):
            raise ValidationError(
                message="Invalid main numbers",
                details={"main_numbers": ["Numbers must be unique"]},
            )
        if numbers != sorted(numbers):
            raise ValidationError(
                message="Invalid main numbers",
                details={"main_numbers": ["Numbers must be sorted ascending"]},
            )

    if draw.secondary_number is not None:
        if not game.has_secondary:
            raise InvalidOptionsError(
                message=f"{game.label} has no Más number",
                details={"secondary_number": [f"{game.name} does not support a secondary number"]},
            )
        mas = int(draw.secondary_number)
        if mas < int(game.secondary_min) or mas > int(game.secondary_max):  # type: ignore[arg-type]
            raise ValidationError(
                message="Invalid Más number",
                details={"secondary_number": [f"Must be within {game.secondary_min}..{game.secondary_max}"]},
            )


class DrawGenerator:
    """Draw random combinations for a game. No side effects."""

    def __init__(self, rng: random.Random | None = None, max_quantity: int = 10) -> None:
        self._rng = rng or random.Random()
        self._max_quantity = max_quantity

    def _pick_main(self, game: GameDefinition) -> tuple[int, ...]:
        # Rejection sampling: redraw on repeats until draw_size distinct numbers are chosen.
        picked: set[int] = set()
        while len(picked) < game.draw_size:
            candidate = self._rng.randint(game.domain_min, game.domain_max)
            if candidate in picked:
                continue
            picked.add(candidate)
        return tuple(sorted(picked))

    def _pick_secondary(self, game: GameDefinition) -> int:
        return self._rng.randint(int(game.secondary_min), int(game.secondary_max))  # type: ignore[arg-type]

    def generate(self, game_type: str, options: DrawOptions | None = None) -> Draw:
        """Generate one combination.

        Returns sorted distinct main numbers within the game's domain and, when
        requested, an independent Más number. With ``secondary_only`` the main
        numbers are empty.
        """

        game = get_game(game_type)
        opts = options or DrawOptions()
        validate_options(game, opts)

        if opts.secondary_only:
            return Draw(game_type=game.name, main_numbers=(), secondary_number=self._pick_secondary(game))

        main = self._pick_main(game)
        secondary = self._pick_secondary(game) if opts.include_secondary else None
        return Draw(game_type=game.name, main_numbers=main, secondary_number=secondary)

    def generate_many(
        self,
        game_type: str,
        options: DrawOptions | None = None,
        quantity: int = 1,
        max_quantity: int | None = None,
    ) -> list[Draw]:
        limit = self._max_quantity if max_quantity is None else max_quantity
        if quantity < 1:
            raise ValidationError(
                message="Invalid quantity",
                details={"quantity": ["Must be >= 1"]},
            )
        if quantity > limit:
            raise ValidationError(
                message="Invalid quantity",
                details={"quantity": [f"Must be <= {limit}"]},
            )

        # Validate once so a bad request fails before any numbers are drawn.
        game = get_game(game_type)
        validate_options(game, options or DrawOptions())

        return [self.generate(game.name, options) for _ in range(int(quantity))]
