"""
Character classes: static feature tables, resources, class features, the
class AI and the per-class strategy table.
"""
