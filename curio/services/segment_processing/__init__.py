"""
Segment processing: split a video course into time slices and drive the external
segment generator over them one tick at a time.
"""
