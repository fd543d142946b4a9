"""
Services package for TV Aggregator

This package contains the aggregation pipeline and its collaborators.
"""
from tv_aggregator.services.alias_service import AliasTable, ChannelAlias
from tv_aggregator.services.hybrid_service import HybridUrlLookup, resolve_hybrid_urls
from tv_aggregator.services.merge_service import merge_similar_channels
from tv_aggregator.services.pipeline_service import ChannelPipeline
from tv_aggregator.services.retry_service import run_with_retry
from tv_aggregator.services.state_store import PipelineStateStore

__all__ = [
    'AliasTable',
    'ChannelAlias',
    'HybridUrlLookup',
    'resolve_hybrid_urls',
    'merge_similar_channels',
    'ChannelPipeline',
    'run_with_retry',
    'PipelineStateStore',
]
