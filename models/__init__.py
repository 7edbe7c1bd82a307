"""
Models package for the Resource Allocation Graph Simulator.
Contains processes, resources, queued events and the live system state.
"""
