"""
Offline evaluation of retrieval quality and latency.

Runs a ground truth query set through the pipeline and scores the
retrieved document ids with standard ranking metrics.
"""
