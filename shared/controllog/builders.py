"""Event builders on top of the controllog SDK.

Each builder emits an event whose postings balance to zero per unit.
"""

from typing import Any, Dict, Optional

from .sdk import event, post


def state_move(
    task_id: str,
    from_: str,
    to: str,
    project_id: Optional[str] = None,
    agent_id: Optional[str] = None,
    run_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> str:
    """Record a task moving between states (e.g. NEW -> WIP -> DONE)."""
    dims = {"task_id": task_id}
    return event(
        kind="state_move",
        task_id=task_id,
        agent_id=agent_id,
        run_id=run_id,
        project_id=project_id,
        payload={"from": from_, "to": to, **(payload or {})},
        postings=[
            post("truth.state", from_, "count", -1, dims),
            post("truth.state", to, "count", 1, dims),
        ],
    )


def model_call(
    task_id: str,
    provider: str,
    model: str,
    call_type: str,
    wall_ms: int,
    prompt_tokens: int = 0,
    completion_tokens: int = 0,
    cost_money: Optional[float] = None,
    project_id: Optional[str] = None,
    agent_id: Optional[str] = None,
    run_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> str:
    """Record a remote model call with tokens, time and cost."""
    dims = {"model": model, "call_type": call_type}
    postings = [
        post("resource.time_ms", f"provider:{provider}", "ms", -wall_ms, dims),
        post("resource.time_ms", f"task:{task_id}", "ms", wall_ms, dims),
    ]
    tokens = prompt_tokens + completion_tokens
    if tokens:
        postings += [
            post("resource.tokens", f"provider:{provider}", "tokens", -tokens, dims),
            post("resource.tokens", f"task:{task_id}", "tokens", tokens, dims),
        ]
    if cost_money:
        postings += [
            post("resource.money", f"provider:{provider}", "usd", -cost_money, dims),
            post("resource.money", f"task:{task_id}", "usd", cost_money, dims),
        ]
    return event(
        kind="model_call",
        task_id=task_id,
        agent_id=agent_id,
        run_id=run_id,
        project_id=project_id,
        payload={
            "provider": provider,
            "model": model,
            "call_type": call_type,
            "wall_ms": wall_ms,
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "cost_money": cost_money,
            **(payload or {}),
        },
        postings=postings,
    )


def round_complete(
    task_id: str,
    game_id: str,
    round_number: int,
    describer: str,
    guesser: str,
    outcome: str,
    attempts: int,
    points: int,
    project_id: Optional[str] = None,
    run_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> str:
    """Record the end of a round; score points move from the game to the guesser."""
    dims = {"game_id": game_id, "round": round_number}
    postings = []
    if points:
        postings = [
            post("value.utility", f"game:{game_id}", "points", -points, dims),
            post("value.utility", f"player:{guesser}", "points", points, dims),
        ]
    return event(
        kind="round_complete",
        task_id=task_id,
        run_id=run_id,
        project_id=project_id,
        payload={
            "game_id": game_id,
            "round": round_number,
            "describer": describer,
            "guesser": guesser,
            "outcome": outcome,
            "attempts": attempts,
            "points": points,
            **(payload or {}),
        },
        postings=postings,
    )


def match_complete(
    task_id: str,
    game_id: str,
    player_1: str,
    player_2: str,
    score_1: int,
    score_2: int,
    end_reason: Optional[str],
    winner: Optional[str],
    rounds_played: int,
    wall_ms: int,
    project_id: Optional[str] = None,
    run_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> str:
    """Record the final result of a match."""
    return event(
        kind="match_complete",
        task_id=task_id,
        run_id=run_id,
        project_id=project_id,
        payload={
            "game_id": game_id,
            "player_1": player_1,
            "player_2": player_2,
            "score_1": score_1,
            "score_2": score_2,
            "end_reason": end_reason,
            "winner": winner,
            "rounds_played": rounds_played,
            "wall_ms": wall_ms,
            **(payload or {}),
        },
    )
