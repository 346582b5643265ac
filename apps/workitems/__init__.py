"""
Work items app.

Provides the work item store, the article lifecycle state machine, the
operator navigation reducer and the workflow API.
"""
