"""
Windowed analytics and flip scoring over stored price history.

Modules:
    types: Dataclasses shared by the calculators
    core: 7/14/30-day windowed aggregation, SMA and EMA
    factors: Trend, performance, pattern and market-health factors
    scoring: Weighted flip score, recommendation and confidence
    popularity: Liquidity/spread/volatility popularity score
    compute: Per-item fan-out producing all result types in one pass
    data_fetcher: Aggregation input query and its digest
    storage: Replace-by-date persistence of results
    runner: Orchestrator triggered by ingestion.completed

Everything except data_fetcher, storage and runner is pure and does no I/O.
"""
