"""
Engine package for the Resource Allocation Graph Simulator.
Contains the simulation stepper and the snapshot history.
"""
