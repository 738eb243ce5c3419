"""Estate data model and the session that coordinates allocation and settlement."""
