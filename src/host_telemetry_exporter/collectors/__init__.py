"""Collectors package for host telemetry.

Contains collector implementations for different kinds of host state.
Each collector module provides fetch and generate_metrics functions that
can be composed with the HostCollector class.
"""
