"""Room aggregate: authoritative state and phase transitions for one game."""

import asyncio
from dataclasses import dataclass, field

from chroma.logic.enums import Phase
from chroma.logic.exceptions import InvariantViolationError, UnauthorizedError
from chroma.logic.scoring import calculate_score
from chroma.logic.timer import RoundCountdown
from chroma.logic.types import CamelModel, ColorPrompt, PromptView, Rgb

DEFAULT_MAX_ROUNDS = 5
DEFAULT_MIN_PLAYERS = 2
DEFAULT_GUESS_TIME_LIMIT = 40


class PlayerInfo(CamelModel):
    """Player entry in a room snapshot."""

    id: str
    nickname: str
    is_host: bool


class RoomSnapshot(CamelModel):
    """Full room state as every member sees it after a change."""

    id: str
    phase: Phase
    players: list[PlayerInfo]
    host: str | None
    current_prompt: PromptView | None
    target_color: Rgb | None
    round_number: int
    max_rounds: int
    scores: dict[str, int]
    guesses: dict[str, Rgb]
    round_end_countdown: int | None
    guess_time_limit: int


@dataclass
class Player:
    """A participant bound to one connection.

    The nickname doubles as the key for guesses and scores, so two players
    sharing a nickname share one guess slot and one score.
    """

    connection_id: str
    nickname: str
    is_host: bool = False


@dataclass
class Room:
    """A game session moving through lobby -> playing -> ended.

    All mutation goes through the methods below; callers hold `lock` for the
    duration of a command and its broadcast. Rule violations raise
    UnauthorizedError or InvariantViolationError and leave the room unchanged.
    """

    room_id: str
    color_sequence: list[ColorPrompt]
    max_rounds: int = DEFAULT_MAX_ROUNDS
    min_players: int = DEFAULT_MIN_PLAYERS
    guess_time_limit: int = DEFAULT_GUESS_TIME_LIMIT
    phase: Phase = Phase.LOBBY
    host: str | None = None
    round_number: int = 0
    players: dict[str, Player] = field(default_factory=dict)  # connection_id -> Player, join order
    guesses: dict[str, Rgb] = field(default_factory=dict)  # nickname -> guess
    scores: dict[str, int] = field(default_factory=dict)  # nickname -> cumulative points
    countdown: RoundCountdown | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if len(self.color_sequence) != self.max_rounds:
            raise ValueError(f"Expected {self.max_rounds} colors, got {len(self.color_sequence)}")

    # --- Queries ---

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def nicknames(self) -> list[str]:
        """Distinct nicknames in join order."""
        return list(dict.fromkeys(p.nickname for p in self.players.values()))

    @property
    def current_prompt(self) -> ColorPrompt | None:
        if self.phase != Phase.PLAYING:
            return None
        return self.color_sequence[self.round_number - 1]

    @property
    def target_color(self) -> Rgb | None:
        prompt = self.current_prompt
        return prompt.rgb if prompt is not None else None

    @property
    def all_guessed(self) -> bool:
        return self.phase == Phase.PLAYING and bool(self.players) and all(n in self.guesses for n in self.nicknames)

    @property
    def should_arm_countdown(self) -> bool:
        """Everyone has guessed and no grace countdown is running yet."""
        return self.all_guessed and self.countdown is None

    def is_host(self, connection_id: str) -> bool:
        player = self.players.get(connection_id)
        return player is not None and player.is_host

    # --- Membership ---

    def add_player(self, connection_id: str, nickname: str, *, is_host: bool = False) -> Player:
        if is_host and self.host is not None:
            raise InvariantViolationError(f"Room {self.room_id} already has a host")
        player = Player(connection_id=connection_id, nickname=nickname, is_host=is_host)
        self.players[connection_id] = player
        if is_host:
            self.host = nickname
        if self.phase == Phase.PLAYING:
            self.scores.setdefault(nickname, 0)
        return player

    def remove_player(self, connection_id: str) -> Player | None:
        """Drop a player; its pending guess goes too unless a namesake remains."""
        player = self.players.pop(connection_id, None)
        if player is not None and player.nickname not in self.nicknames:
            self.guesses.pop(player.nickname, None)
        return player

    # --- Transitions ---

    def start_game(self, connection_id: str) -> None:
        if not self.is_host(connection_id):
            raise UnauthorizedError("Only the host can start the game")
        if self.phase != Phase.LOBBY:
            raise InvariantViolationError(f"Cannot start a game in phase {self.phase}")
        if self.player_count < self.min_players:
            raise InvariantViolationError(f"Need at least {self.min_players} players, have {self.player_count}")

        self.phase = Phase.PLAYING
        self.round_number = 1
        self.guesses.clear()
        self.scores = dict.fromkeys(self.nicknames, 0)

    def submit_guess(self, connection_id: str, guess: Rgb) -> None:
        """Record (or overwrite) the sender's guess for the current round."""
        if self.phase != Phase.PLAYING:
            raise InvariantViolationError(f"Guesses are not accepted in phase {self.phase}")
        player = self.players.get(connection_id)
        if player is None:
            raise InvariantViolationError(f"Connection {connection_id} is not in room {self.room_id}")
        self.guesses[player.nickname] = guess

    def arm_countdown(self, countdown: RoundCountdown) -> None:
        if not self.should_arm_countdown:
            raise InvariantViolationError("Round-end countdown cannot be armed now")
        self.countdown = countdown

    def clear_countdown(self) -> None:
        if self.countdown is not None:
            self.countdown.cancel()
            self.countdown = None

    def close_round(self) -> dict[str, int]:
        """Score the round, then advance to the next target or end the game.

        Returns the points each guesser earned this round. Players who did not
        guess are absent from the result and keep their score.
        """
        target = self.target_color
        if target is None:
            raise InvariantViolationError(f"No round to close in phase {self.phase}")

        awarded = {nickname: calculate_score(guess, target) for nickname, guess in self.guesses.items()}
        for nickname, points in awarded.items():
            self.scores[nickname] = self.scores.get(nickname, 0) + points

        self.clear_countdown()
        self.guesses.clear()
        if self.round_number >= self.max_rounds:
            self.phase = Phase.ENDED
        else:
            self.round_number += 1
        return awarded

    # --- Serialization ---

    def snapshot(self) -> RoomSnapshot:
        prompt = self.current_prompt
        return RoomSnapshot(
            id=self.room_id,
            phase=self.phase,
            players=[
                PlayerInfo(id=p.connection_id, nickname=p.nickname, is_host=p.is_host) for p in self.players.values()
            ],
            host=self.host,
            current_prompt=PromptView(name=prompt.name, description=prompt.description) if prompt else None,
            target_color=prompt.rgb if prompt else None,
            round_number=self.round_number,
            max_rounds=self.max_rounds,
            scores=dict(self.scores),
            guesses=dict(self.guesses),
            round_end_countdown=self.countdown.remaining if self.countdown is not None else None,
            guess_time_limit=self.guess_time_limit,
        )
