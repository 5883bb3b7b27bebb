"""Implementation modules of dtmesh; import public names from :mod:`dtmesh`."""
