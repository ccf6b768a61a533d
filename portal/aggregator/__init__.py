"""Per-team board assembly."""

from portal.aggregator.state_aggregator import StateAggregator, StateBucket, TeamBoard

__all__ = ["StateAggregator", "StateBucket", "TeamBoard"]
