"""Input-for-target-output search over an opaque, roughly monotone replay.

``step`` is the whole numeric rule and touches no sandbox: given the guess
that was just evaluated and what it produced, it either accepts, proposes the
next guess (``guess / ratio``), or gives up. ``solve`` iterates it under the
iteration cap and keeps the last good observation, so running out of
iterations still yields an approximate answer flagged ``converged=False``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Union


@dataclass(slots=True, frozen=True)
class SolverPolicy:
    tolerance: float = 0.01
    max_iterations: int = 10

    def __post_init__(self) -> None:
        if not (self.tolerance > 0 and math.isfinite(self.tolerance)):
            raise ValueError(f"Solver tolerance must be a positive finite number, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"Solver needs at least one iteration, got {self.max_iterations}")


@dataclass(slots=True, frozen=True)
class Candidate:
    venue: str
    amount_in: float
    amount_out: float


@dataclass(slots=True, frozen=True)
class Converged:
    candidate: Candidate


@dataclass(slots=True, frozen=True)
class Continue:
    next_guess: float


@dataclass(slots=True, frozen=True)
class Diverged:
    reason: str


StepOutcome = Union[Converged, Continue, Diverged]


@dataclass(slots=True, frozen=True)
class SolverResult:
    candidate: Candidate
    converged: bool
    iterations: int
    reason: str = ""


def step(*, guess: float, observed: Candidate | None, target: float, tolerance: float) -> StepOutcome:
    if observed is None:
        return Diverged("no venue produced an output")

    ratio = observed.amount_out / target
    if not math.isfinite(ratio) or ratio <= 0:
        return Diverged(f"unusable output ratio {ratio}")
    if abs(ratio - 1.0) <= tolerance:
        return Converged(observed)

    next_guess = guess / ratio
    if not math.isfinite(next_guess) or next_guess <= 0:
        return Diverged(f"unusable next guess {next_guess}")
    return Continue(next_guess)


def solve(
    *,
    target: float,
    initial_guess: float,
    evaluate: Callable[[float], Candidate | None],
    policy: SolverPolicy | None = None,
) -> SolverResult | None:
    """Return the input whose output lands within tolerance of ``target``.

    ``None`` means no evaluation ever produced a usable candidate.
    """
    rules = policy or SolverPolicy()
    if not (target > 0 and math.isfinite(target)):
        raise ValueError(f"Solver target must be a positive finite number, got {target}")
    if not (initial_guess > 0 and math.isfinite(initial_guess)):
        return None

    guess = initial_guess
    last_good: Candidate | None = None
    for iteration in range(1, rules.max_iterations + 1):
        observed = evaluate(guess)
        outcome = step(guess=guess, observed=observed, target=target, tolerance=rules.tolerance)

        if isinstance(outcome, Converged):
            return SolverResult(candidate=outcome.candidate, converged=True, iterations=iteration)
        if isinstance(outcome, Diverged):
            if last_good is None:
                return None
            return SolverResult(candidate=last_good, converged=False, iterations=iteration, reason=outcome.reason)

        last_good = observed
        guess = outcome.next_guess

    if last_good is None:
        return None
    return SolverResult(
        candidate=last_good,
        converged=False,
        iterations=rules.max_iterations,
        reason="iteration budget exhausted",
    )
