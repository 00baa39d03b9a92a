"""Utility functions and types for bridgesampling.

This module contains utility functions, type definitions and custom
exceptions used throughout the bridgesampling package:

- Type annotations for arrays and the log-posterior callback protocol
- Custom exception classes for error handling
- Autocorrelation and effective sample size utilities
- Log-space reductions shared by the estimation stages
"""
