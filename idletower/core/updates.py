"""State update functions for the tower game engine.

Each function takes the PRE-state (global state plus the read-only tower view
in the context) and returns a `Transition`: the next global state, every
account the action touched and the `Effect` the shell must carry out.

Precondition: the corresponding guard returned without raising.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict

from . import referral
from .accrual import accrue, collect
from .guards import EngineContext
from .liquidity_gate import begin_provision
from .treasury import credits_for_payment, plan_withdrawal, reinvest_credits, split_deposit
from .types import (
    AccountId,
    ActionParams,
    Effect,
    Event,
    GlobalState,
    TowerAccount,
    Transition,
)


def _account(ctx: EngineContext, owner: AccountId) -> TowerAccount:
    acc = ctx.towers.get(owner)
    return acc if acc is not None else TowerAccount(owner=owner)


def apply_deposit(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    cfg = ctx.config
    payer = params.caller
    acc = _account(ctx, payer)
    credits = credits_for_payment(params.amount, cfg.credit_price)
    split = split_deposit(params.amount, cfg.fee_bps)

    total_towers = state.total_towers
    if not acc.is_registered:
        acc = replace(
            acc,
            referrer=referral.bind_referrer(payer, params.referrer, cfg.manager),
            registered_at=params.now,
            last_accrual=params.now,
        )
        total_towers += 1
    acc = replace(acc, credits=acc.credits + credits)

    ancestors, paid = referral.distribute(cfg, payer, credits, ctx.towers, {payer: acc})
    accounts: Dict[AccountId, TowerAccount] = {payer: acc}
    accounts.update(ancestors)

    next_state = replace(
        state,
        total_towers=total_towers,
        total_invested=state.total_invested + params.amount,
        reserve_balance=state.reserve_balance + split.to_reserve,
        manager_fees_paid=state.manager_fees_paid + split.manager_fee,
    )
    effect = Effect(
        event=Event.DEPOSITED,
        account=payer,
        credits=credits,
        manager_fee=split.manager_fee,
        referral_credits=paid,
    )
    return Transition(state=next_state, accounts=accounts, effect=effect)


def apply_upgrade_tower(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    tier = params.tier
    acc = accrue(_account(ctx, params.caller), params.now, ctx.config.max_accrual_hours).account
    level = acc.builders[tier] + 1
    entry = ctx.catalog.entry(tier, level)

    builders = list(acc.builders)
    builders[tier] = level
    acc = replace(
        acc,
        credits=acc.credits - entry.credit_cost,
        builders=tuple(builders),
        yield_rate=acc.yield_rate + entry.yield_increment,
    )
    effect = Effect(event=Event.TOWER_UPGRADED, account=params.caller, credits=entry.credit_cost)
    return Transition(state=state, accounts={params.caller: acc}, effect=effect)


def apply_collect(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    before = _account(ctx, params.caller)
    acc = collect(before, params.now, ctx.config.max_accrual_hours).account
    moved = acc.withdrawable_earnings - before.withdrawable_earnings
    effect = Effect(event=Event.COLLECTED, account=params.caller, credits=moved)
    return Transition(state=state, accounts={params.caller: acc}, effect=effect)


def apply_withdraw(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    acc = _account(ctx, params.caller)
    plan = plan_withdrawal(acc.withdrawable_earnings, state.reserve_balance, ctx.config.credit_price)
    acc = replace(
        acc,
        withdrawable_earnings=acc.withdrawable_earnings - plan.earnings_debited,
        total_withdrawn=acc.total_withdrawn + plan.paid,
    )
    effect = Effect(
        event=Event.WITHDRAWN,
        account=params.caller,
        payout=plan.paid,
        earnings_debited=plan.earnings_debited,
    )
    return Transition(
        state=replace(state, reserve_balance=plan.reserve_after),
        accounts={params.caller: acc},
        effect=effect,
    )


def apply_reinvest(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    acc = _account(ctx, params.caller)
    earnings = acc.withdrawable_earnings
    credits = reinvest_credits(earnings, ctx.config.credit_price)
    acc = replace(acc, credits=acc.credits + credits, withdrawable_earnings=0)
    effect = Effect(
        event=Event.REINVESTED,
        account=params.caller,
        credits=credits,
        earnings_debited=earnings,
    )
    return Transition(state=state, accounts={params.caller: acc}, effect=effect)


def apply_claim_token(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    acc = replace(_account(ctx, params.caller), has_claimed=True)
    next_state = replace(state, total_claims=state.total_claims + 1)
    next_state, request = begin_provision(ctx.config, next_state)
    effect = Effect(
        event=Event.TOKEN_CLAIMED,
        account=params.caller,
        token_reward=ctx.config.claim_reward_tokens,
        provision=request,
    )
    return Transition(state=next_state, accounts={params.caller: acc}, effect=effect)


def apply_force_add_liquidity(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    next_state, request = begin_provision(ctx.config, state)
    effect = Effect(event=Event.LIQUIDITY_FORCED, account=params.caller, provision=request)
    return Transition(state=next_state, accounts={}, effect=effect)


def apply_claim_referral_earnings(ctx: EngineContext, state: GlobalState, params: ActionParams) -> Transition:
    before = _account(ctx, params.caller)
    acc = referral.claim(before)
    effect = Effect(
        event=Event.REFERRAL_CLAIMED,
        account=params.caller,
        credits=before.unclaimed_referral,
    )
    return Transition(state=state, accounts={params.caller: acc}, effect=effect)
