"""Command-line interface for the swap-and-deploy engine."""

import logging
from typing import Optional

import click

from lpswap.blockchain import ChainDataFetcher
from lpswap.config import ConfigManager
from lpswap.core.errors import SwapEngineError
from lpswap.core.interfaces import LpQuote, NATIVE_TOKEN, SwapAndDeployRequest
from lpswap.engine import PlanningContext, SwapAndDeployOrchestrator, create_strategy
from lpswap.simulation import SimulatedMarket, WRAPPED_NATIVE
from lpswap.uniswap import PriceMath


@click.group()
@click.option('--config', '-c', default='config.yaml', help='Path to configuration file')
@click.option('--log-level', '-l', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.pass_context
def cli(ctx, config: str, log_level: str):
    """Swap-and-deploy liquidity allocation engine."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['log_level'] = log_level
    ctx.obj['config_manager'] = ConfigManager(config)

    # Basic logging until the configuration overrides it
    logging.basicConfig(level=getattr(logging, log_level))


@cli.command()
@click.option('--amount', '-a', type=int, help='Override the simulated input amount')
@click.option('--strategy', '-s', help='Override the configured allocation strategy')
@click.pass_context
def simulate(ctx, amount: Optional[int], strategy: Optional[str]):
    """Run swap_and_deploy against the in-memory market from the config."""
    config_manager = ctx.obj['config_manager']
    config = config_manager.load()
    sim = config_manager.get_simulation_config()
    engine = config.engine

    def _pool_token(token: str) -> str:
        return WRAPPED_NATIVE if token.lower() == NATIVE_TOKEN else token

    market = SimulatedMarket.create(
        _pool_token(sim.token_in), _pool_token(sim.token_out), sim.fee_tier,
        PriceMath.get_sqrt_ratio_at_tick(sim.tick), sim.liquidity,
        sim.tick_lower, sim.tick_upper, native_output=sim.native_output
    )

    try:
        allocation = create_strategy(
            strategy or engine.strategy, max_search_iterations=engine.max_search_iterations
        )
    except SwapEngineError as e:
        click.echo(f"❌ {e}", err=True)
        ctx.exit(1)

    orchestrator = SwapAndDeployOrchestrator(
        market.engine_context(engine.account, allocation, engine.deposit_policy)
    )

    amount_in = amount if amount is not None else sim.amount_in
    value = 0
    market.ledger.mint(sim.token_in, sim.caller, amount_in)
    if sim.token_in.lower() == NATIVE_TOKEN:
        value = amount_in
    else:
        market.ledger.approve(sim.token_in, sim.caller, engine.account, amount_in)

    request = SwapAndDeployRequest(
        token_in=sim.token_in,
        token_out=sim.token_out,
        fee_tier=sim.fee_tier,
        amount_in=amount_in,
        position_id=market.position.position_id,
        batch_impact_threshold=engine.batch_impact_threshold,
        per_swap_slippage_cap=engine.per_swap_slippage_cap,
        spare_in_recipient=engine.spare_in_recipient,
        spare_out_recipient=engine.spare_out_recipient
    )

    try:
        response = orchestrator.swap_and_deploy(request, sim.caller, value)
    except SwapEngineError as e:
        click.echo(f"❌ Simulation aborted: {e}", err=True)
        ctx.exit(1)

    click.echo("\n" + "=" * 60)
    click.echo(f"SIMULATION RESULT ({response.strategy})")
    click.echo("=" * 60)
    click.echo(f"  State: {response.state.value}")
    click.echo(f"  Swapped: {response.amount_swap_in} -> {response.amount_swap_out}")
    click.echo(f"  Deposited: {response.amount_deposited_in} in / {response.amount_deposited_out} out")
    click.echo(f"  Liquidity added: {response.liquidity_added}")
    click.echo(f"  Spare in: {response.spare_in} -> {request.spare_in_recipient}")
    click.echo(f"  Spare out: {response.spare_out} -> {request.spare_out_recipient}")


@cli.command()
@click.option('--pool', '-p', required=True, help='Pool identifier from config')
@click.option('--position-id', type=int, required=True, help='Target position token id')
@click.option('--token-in', required=True, help='Input token address')
@click.option('--amount', '-a', type=int, required=True, help='Input amount in base units')
@click.option('--strategy', '-s', help='Override the configured allocation strategy')
@click.option('--block', '-b', type=int, help='Block number (default: latest)')
@click.pass_context
def quote(ctx, pool: str, position_id: int, token_in: str, amount: int,
          strategy: Optional[str], block: Optional[int]):
    """Quote an allocation against a live pool (read-only)."""
    config_manager = ctx.obj['config_manager']
    config = config_manager.load()
    engine = config.engine

    if config.ethereum is None or not config.ethereum.position_manager:
        click.echo("❌ Quoting needs ethereum.rpc_url and ethereum.position_manager", err=True)
        ctx.exit(1)

    pool_config = config_manager.get_pool_config(pool)
    fetcher = ChainDataFetcher(
        config.ethereum.rpc_url,
        retry_attempts=config.ethereum.retry_attempts,
        timeout=config.ethereum.timeout
    )
    snapshot = fetcher.get_pool_snapshot(pool_config.address, block if block is not None else 'latest')
    position = fetcher.get_position(config.ethereum.position_manager, position_id)

    if (position.token0, position.token1, position.fee) != (snapshot.token0, snapshot.token1, snapshot.fee):
        click.echo(f"❌ Position {position_id} does not belong to pool {pool_config.address}", err=True)
        ctx.exit(1)
    if token_in.lower() not in (snapshot.token0, snapshot.token1):
        click.echo(f"❌ Pool {pool_config.address} does not trade {token_in}", err=True)
        ctx.exit(1)

    try:
        allocation = create_strategy(
            strategy or engine.strategy, max_search_iterations=engine.max_search_iterations
        )
        planning = PlanningContext.for_position(
            snapshot.state, snapshot.fee, position, token_in.lower() == snapshot.token0,
            amount, engine.batch_impact_threshold, engine.per_swap_slippage_cap
        )
        lp_quote = allocation.quote(planning)
    except SwapEngineError as e:
        click.echo(f"❌ Quote failed: {e}", err=True)
        ctx.exit(1)

    click.echo(f"\nPool: {pool_config.name} at block {snapshot.block_identifier}")
    click.echo(f"Current tick: {snapshot.tick}, position range: [{position.tick_lower}, {position.tick_upper})")
    _print_quote(lp_quote, allocation.identifier)


@cli.command()
@click.option('--pool', '-p', help='Pool identifier to get info for')
@click.option('--block', '-b', type=int, help='Block number (default: latest)')
@click.pass_context
def pool_info(ctx, pool: Optional[str], block: Optional[int]):
    """Get information about a pool."""
    config_manager = ctx.obj['config_manager']
    config = config_manager.load()

    if not pool:
        click.echo("Configured pools:")
        for pool_id, pool_config in config.pools.items():
            click.echo(f"  - {pool_id}: {pool_config.name} ({pool_config.address})")
        return

    if config.ethereum is None:
        click.echo("❌ No ethereum section in configuration", err=True)
        ctx.exit(1)

    pool_config = config_manager.get_pool_config(pool)
    fetcher = ChainDataFetcher(config.ethereum.rpc_url, retry_attempts=config.ethereum.retry_attempts)
    snapshot = fetcher.get_pool_snapshot(pool_config.address, block if block is not None else 'latest')

    click.echo(f"\nPool: {pool_config.name}")
    click.echo(f"Address: {pool_config.address}")
    click.echo(f"Token0: {pool_config.token0.symbol} ({pool_config.token0.address})")
    click.echo(f"Token1: {pool_config.token1.symbol} ({pool_config.token1.address})")
    click.echo(f"Fee Tier: {pool_config.fee_tier / 10000}%")
    click.echo(f"\nCurrent State (Block {snapshot.block_identifier}):")
    click.echo(f"  Current Tick: {snapshot.tick}")
    click.echo(f"  Sqrt Price X96: {snapshot.state.sqrt_price_x96}")
    click.echo(f"  Liquidity: {snapshot.state.liquidity}")


@cli.command()
@click.pass_context
def validate_config(ctx):
    """Validate configuration file."""
    config_manager = ctx.obj['config_manager']

    try:
        config = config_manager.load()
        click.echo("✅ Configuration is valid")

        click.echo(f"\nConfiguration summary:")
        click.echo(f"  Pools: {len(config.pools)}")
        click.echo(f"  Strategy: {config.engine.strategy}")
        policy = config.engine.deposit_policy.value if config.engine.deposit_policy else 'strategy default'
        click.echo(f"  Deposit policy: {policy}")
        click.echo(f"  Chain access: {'configured' if config.ethereum else 'not configured'}")
        click.echo(f"  Simulation: {'configured' if config.simulation else 'not configured'}")

    except (ValueError, KeyError, FileNotFoundError) as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        ctx.exit(1)


def _print_quote(lp_quote: LpQuote, strategy: str):
    click.echo("\n" + "=" * 60)
    click.echo(f"QUOTE ({strategy})")
    click.echo("=" * 60)
    click.echo(f"  Swap: {lp_quote.amount_swap_in} -> {lp_quote.amount_swap_out}")
    click.echo(f"  Deposit offered: {lp_quote.amount_lp_in} in / {lp_quote.amount_lp_out} out")
    click.echo(f"  Liquidity: {lp_quote.liquidity_delta}")
    click.echo(f"  Spare: {lp_quote.spare_in} in / {lp_quote.spare_out} out")
    click.echo(f"  Price after swap (sqrt X96): {lp_quote.sqrt_price_x96_after}")


if __name__ == '__main__':
    cli()
