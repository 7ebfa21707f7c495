"""
Batch pipeline that builds the training and test feature matrices.
"""
