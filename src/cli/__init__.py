"""typer CLI for `cluster-enroll`."""
