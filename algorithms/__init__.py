"""
Algorithms package for the Resource Allocation Graph Simulator.
Contains the allocation ledger operations, wait-for graph construction,
cycle detection and the speculative avoidance check.
"""
