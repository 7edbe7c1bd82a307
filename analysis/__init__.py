"""
Analysis package for the Resource Allocation Graph Simulator.
Contains the simulation log, statistics and trace export.
"""
