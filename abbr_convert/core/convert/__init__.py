"""Token tree conversion engine.

Turns the parser's token tree into the unrolled node tree consumed by
renderers. Conversion is deterministic: the same tree, text and variables
always produce the same nodes.
"""
