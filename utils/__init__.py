"""
Utilities for the Resource Allocation Graph Simulator.
Contains the console/file logger and the scenario loader.
"""
