#Status transitions owned by the dispatch layer:
#trip_state   - trip assignment (unassigned -> pending / accepted)
#driver_state - driver accept/decline statistics
