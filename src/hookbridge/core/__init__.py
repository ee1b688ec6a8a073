"""
Request correlation core: store, coordinator and delivery handler
"""
