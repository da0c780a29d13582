#!/usr/bin/env python3
"""cfg_generator.py

A random sentence generator for context-free grammars.

Key features:
- Immutable grammar model (terminals, nonterminals, sequences, alternations).
- Leftmost derivation with uniform random rule and alternative choice.
- Single-step API for tracing intermediate derivation states.
- Injectable random source for reproducible output.
- JSON-based grammar files and a small command line.

Run:
  python cfg_generator.py generate grammar.json -n 5 --seed 123
  python cfg_generator.py trace grammar.json
  python cfg_generator.py --help
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from collections.abc import Generator, Iterable
from dataclasses import dataclass, field
from typing import Any, cast

logger = logging.getLogger(__name__)


# -------------------------
# Errors / Validation
# -------------------------


class ConfigError(ValueError):
    pass


class DerivationError(RuntimeError):
    """Base class for failures raised while deriving a sentence."""


class UnresolvedNonTerminal(DerivationError):
    def __init__(self, nonterminal: NonTerminal) -> None:
        super().__init__(f"no rule for nonterminal {nonterminal.name!r}")
        self.nonterminal = nonterminal


class EmptyAlternation(DerivationError):
    def __init__(self, nonterminal: NonTerminal | None = None) -> None:
        where = f" for {nonterminal.name!r}" if nonterminal is not None else ""
        super().__init__(f"alternation{where} has no sequences")
        self.nonterminal = nonterminal


class IncompleteDerivation(DerivationError):
    def __init__(self, remaining: list[NonTerminal]) -> None:
        names = ", ".join(repr(n.name) for n in remaining)
        super().__init__(f"derivation is not complete; nonterminals remain: {names}")
        self.remaining = remaining


class StepLimitExceeded(DerivationError):
    def __init__(self, max_steps: int) -> None:
        super().__init__(f"derivation did not finish within {max_steps} steps")
        self.max_steps = max_steps


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_list(x: Any, path: str) -> list[Any]:
    _require(isinstance(x, list), f"{path} must be an array")
    return cast(list[Any], x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


# -------------------------
# Symbol model
# -------------------------


@dataclass(frozen=True)
class Terminal:
    value: str


@dataclass(frozen=True)
class NonTerminal:
    name: str


Symbol = Terminal | NonTerminal


@dataclass(frozen=True)
class Sequence:
    # empty tuple is the epsilon production
    symbols: tuple[Symbol, ...] = ()


@dataclass(frozen=True)
class Or:
    alternatives: tuple[Sequence, ...]


RuleBody = Sequence | Or


@dataclass(frozen=True)
class Rule:
    lhs: NonTerminal
    body: RuleBody


@dataclass(frozen=True)
class Grammar:
    """Start symbol plus rules, indexed by left-hand side.

    Several rules may share a left-hand side. Nothing is validated here: a
    nonterminal without rules only fails when a derivation needs it.
    """

    start: NonTerminal
    rules: tuple[Rule, ...]
    _index: dict[NonTerminal, list[Rule]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        index: dict[NonTerminal, list[Rule]] = {}
        for r in rules:
            index.setdefault(r.lhs, []).append(r)
        object.__setattr__(self, "rules", rules)
        object.__setattr__(self, "_index", index)

    def rules_for(self, nonterminal: NonTerminal) -> list[Rule]:
        return list(self._index.get(nonterminal, ()))

    @property
    def nonterminals(self) -> list[NonTerminal]:
        return list(self._index)


@dataclass
class Derivation:
    symbols: list[Symbol]

    def copy(self) -> Derivation:
        return Derivation(list(self.symbols))

    def __str__(self) -> str:
        return format_symbols(self.symbols)


@dataclass(frozen=True)
class Expression:
    terminals: tuple[Terminal, ...]

    def __str__(self) -> str:
        return "".join(t.value for t in self.terminals)


def format_symbols(symbols: Iterable[Symbol]) -> str:
    """Render a symbol sequence for display: ``<Name>`` for nonterminals."""
    parts = []
    for sym in symbols:
        if isinstance(sym, NonTerminal):
            parts.append(f"<{sym.name}>")
        else:
            parts.append(sym.value)
    return "".join(parts)


# -------------------------
# Builders
# -------------------------


def nt(name: str) -> NonTerminal:
    return NonTerminal(name)


def t(value: str) -> Terminal:
    return Terminal(value)


def seq(*symbols: Symbol) -> Sequence:
    return Sequence(tuple(symbols))


def alt(*sequences: Sequence) -> Or:
    return Or(tuple(sequences))


def rule(lhs: str | NonTerminal, body: RuleBody) -> Rule:
    if isinstance(lhs, str):
        lhs = NonTerminal(lhs)
    return Rule(lhs, body)


def terminal_choice(lhs: str | NonTerminal, *values: str) -> Rule:
    """Rule choosing one of several single-terminal sequences, e.g. D -> "0" | "1"."""
    return rule(lhs, Or(tuple(Sequence((Terminal(v),)) for v in values)))


# -------------------------
# Rule resolution
# -------------------------


def choose_rule(
    grammar: Grammar, nonterminal: NonTerminal, rng: random.Random
) -> Rule:
    candidates = grammar.rules_for(nonterminal)
    if not candidates:
        raise UnresolvedNonTerminal(nonterminal)
    return rng.choice(candidates)


def choose_alternative(
    or_: Or, rng: random.Random, *, nonterminal: NonTerminal | None = None
) -> Sequence:
    if not or_.alternatives:
        raise EmptyAlternation(nonterminal)
    return rng.choice(or_.alternatives)


def resolve_replacement(r: Rule, rng: random.Random) -> Sequence:
    """Pick the sequence a rule rewrites to.

    Rule choice and alternative choice are two independent draws, so a plain
    rule sharing a left-hand side with an n-way ``Or`` rule gets weight 1/2,
    not 1/(n+1).
    """
    if isinstance(r.body, Or):
        return choose_alternative(r.body, rng, nonterminal=r.lhs)
    return r.body


# -------------------------
# Derivation engine
# -------------------------


def start_derivation(grammar: Grammar) -> Derivation:
    return Derivation([grammar.start])


def find_leftmost_nonterminal(derivation: Derivation) -> int | None:
    for i, sym in enumerate(derivation.symbols):
        if isinstance(sym, NonTerminal):
            return i
    return None


def is_done(derivation: Derivation) -> bool:
    return find_leftmost_nonterminal(derivation) is None


def derive_step(
    derivation: Derivation, grammar: Grammar, rng: random.Random
) -> None:
    """Rewrite the leftmost nonterminal in place. No-op once done."""
    index = find_leftmost_nonterminal(derivation)
    if index is None:
        return

    target = cast(NonTerminal, derivation.symbols[index])
    chosen = choose_rule(grammar, target, rng)
    replacement = resolve_replacement(chosen, rng)

    # replaces exactly one element; an empty replacement shrinks the list
    derivation.symbols[index : index + 1] = replacement.symbols
    logger.debug(
        "rewrote <%s> at %d -> %r",
        target.name,
        index,
        format_symbols(replacement.symbols),
    )


def to_expression(derivation: Derivation) -> Expression:
    remaining = [s for s in derivation.symbols if isinstance(s, NonTerminal)]
    if remaining:
        raise IncompleteDerivation(remaining)
    return Expression(tuple(cast(Terminal, s) for s in derivation.symbols))


def _check_steps(steps: int, max_steps: int | None) -> None:
    if max_steps is not None and steps >= max_steps:
        raise StepLimitExceeded(max_steps)


def derive(
    derivation: Derivation,
    grammar: Grammar,
    rng: random.Random,
    *,
    max_steps: int | None = None,
) -> Expression:
    """Rewrite until only terminals remain, then convert.

    Without ``max_steps`` there is no cycle detection: a grammar whose
    recursion has no base case loops until memory runs out.
    """
    steps = 0
    while not is_done(derivation):
        _check_steps(steps, max_steps)
        derive_step(derivation, grammar, rng)
        steps += 1
    logger.debug("derivation finished after %d steps", steps)
    return to_expression(derivation)


def iter_derivation(
    grammar: Grammar,
    rng: random.Random,
    *,
    max_steps: int | None = None,
) -> Generator[Derivation, None, None]:
    """Yield a snapshot of every derivation state, starting with ``[start]``."""
    derivation = start_derivation(grammar)
    yield derivation.copy()

    steps = 0
    while not is_done(derivation):
        _check_steps(steps, max_steps)
        derive_step(derivation, grammar, rng)
        steps += 1
        yield derivation.copy()


def generate(
    grammar: Grammar,
    *,
    rng: random.Random | None = None,
    max_steps: int | None = None,
) -> str:
    if rng is None:
        rng = random.Random()
    derivation = start_derivation(grammar)
    return str(derive(derivation, grammar, rng, max_steps=max_steps))


# -------------------------
# Grammar files
# -------------------------


@dataclass(frozen=True)
class GrammarConfig:
    name: str
    grammar: Grammar


def _parse_symbol(x: Any, path: str) -> Symbol:
    if isinstance(x, str):
        return Terminal(x)
    obj = _as_dict(x, path)
    _require(
        set(obj) == {"nt"},
        f"{path} must be a string or an object with a single key 'nt'",
    )
    name = _as_str(obj["nt"], f"{path}.nt")
    _require(len(name) > 0, f"{path}.nt must be non-empty")
    return NonTerminal(name)


def _parse_sequence(x: Any, path: str) -> Sequence:
    items = _as_list(x, path)
    return Sequence(
        tuple(_parse_symbol(item, f"{path}[{i}]") for i, item in enumerate(items))
    )


def parse_grammar(obj: dict[str, Any]) -> GrammarConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "Grammar"), "name")
    start = _as_str(obj.get("start", ""), "start")
    _require(len(start) > 0, "start must be non-empty")

    rules: list[Rule] = []
    for i, raw in enumerate(_as_list(obj.get("rules", []), "rules")):
        path = f"rules[{i}]"
        r = _as_dict(raw, path)
        lhs = _as_str(r.get("lhs", ""), f"{path}.lhs")
        _require(len(lhs) > 0, f"{path}.lhs must be non-empty")
        _require(
            ("seq" in r) != ("or" in r),
            f"{path} must have exactly one of 'seq' or 'or'",
        )

        body: RuleBody
        if "seq" in r:
            body = _parse_sequence(r["seq"], f"{path}.seq")
        else:
            alts = _as_list(r["or"], f"{path}.or")
            body = Or(
                tuple(
                    _parse_sequence(a, f"{path}.or[{j}]") for j, a in enumerate(alts)
                )
            )
        rules.append(Rule(NonTerminal(lhs), body))

    return GrammarConfig(name=name, grammar=Grammar(NonTerminal(start), tuple(rules)))


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def load_grammar(path: str) -> GrammarConfig:
    return parse_grammar(load_json(path))


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
GRAMMAR JSON SYNTAX

  name: string (optional)
      A human-readable title.

  start: string (required)
      Name of the start nonterminal.

  rules: array of rule objects
      Each rule has "lhs" (nonterminal name) and exactly one of:
        "seq": [symbol, ...]              unconditional expansion
        "or":  [[symbol, ...], ...]       one alternative chosen at random

      A symbol is either a string (terminal text) or {"nt": "<name>"}.
      An empty "seq" is the empty production.

      Several rules may share an lhs. One of them is chosen uniformly, then,
      for an "or" rule, one alternative is chosen uniformly.

Example

    {
      "start": "S",
      "rules": [
        {"lhs": "S", "seq": [{"nt": "A"}, {"nt": "N"}]},
        {"lhs": "A", "or": [["a"], ["b"], ["c"]]},
        {"lhs": "N", "or": [["0"], ["1"], ["2"]]}
      ]
    }

Grammars whose recursion has no base case never finish; use --max-steps to
bound a derivation.
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cfg_generator.py",
        description="Random sentence generator for context-free grammars.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "-v", "--verbose", action="store_true", help="Log every rewrite step."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pg = sub.add_parser("generate", help="Print random sentences from a grammar.")
    pg.add_argument("config", help="Path to the grammar JSON file.")
    pg.add_argument(
        "-n", "--count", type=int, default=1, help="Number of sentences (default 1)."
    )

    pt = sub.add_parser("trace", help="Print every step of one derivation.")
    pt.add_argument("config", help="Path to the grammar JSON file.")

    for sp in (pg, pt):
        sp.add_argument(
            "--seed", type=int, default=None, help="Seed for repeatable randomness."
        )
        sp.add_argument(
            "--max-steps",
            type=int,
            default=None,
            help="Fail a derivation that needs more rewrite steps than this.",
        )

    pv = sub.add_parser(
        "validate", help="Check a grammar file and sample a few derivations."
    )
    pv.add_argument("config", help="Path to the grammar JSON file.")

    return p


# -------------------------
# Commands
# -------------------------


def cmd_generate(
    config_path: str, count: int, seed: int | None, max_steps: int | None
) -> None:
    _require(count >= 0, "--count must be >= 0")
    cfg = load_grammar(config_path)
    rng = random.Random(seed)
    for _ in range(count):
        print(generate(cfg.grammar, rng=rng, max_steps=max_steps))


def cmd_trace(config_path: str, seed: int | None, max_steps: int | None) -> None:
    cfg = load_grammar(config_path)
    rng = random.Random(seed)
    states = iter_derivation(cfg.grammar, rng, max_steps=max_steps)
    for step, state in enumerate(states):
        print(f"{step}: {state}")


_VALIDATE_SAMPLES = 20
_VALIDATE_STEP_LIMIT = 10_000


def cmd_validate(config_path: str) -> None:
    cfg = load_grammar(config_path)
    g = cfg.grammar

    print(f"name: {cfg.name}")
    print(f"start: {g.start.name}")
    print(f"rules: {len(g.rules)}")
    print(f"nonterminals: {len(g.nonterminals)}")

    # Sample bounded derivations to surface missing rules and empty
    # alternations reachable from the start symbol.
    rng = random.Random(0)
    lengths = []
    limited = 0
    for _ in range(_VALIDATE_SAMPLES):
        try:
            lengths.append(len(generate(g, rng=rng, max_steps=_VALIDATE_STEP_LIMIT)))
        except StepLimitExceeded:
            limited += 1
    print(f"samples: {len(lengths)}/{_VALIDATE_SAMPLES}")
    if lengths:
        print(f"length: min={min(lengths)} max={max(lengths)}")
    if limited:
        print(
            f"warning: {limited} samples exceeded {_VALIDATE_STEP_LIMIT} steps; "
            "the grammar may not terminate"
        )


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.cmd == "generate":
            cmd_generate(args.config, args.count, args.seed, args.max_steps)
        elif args.cmd == "trace":
            cmd_trace(args.config, args.seed, args.max_steps)
        elif args.cmd == "validate":
            cmd_validate(args.config)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    except DerivationError as e:
        print(f"Derivation error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
