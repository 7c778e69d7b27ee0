# roi_tools version
__version_info__ = (0, 3, 0)
__version__ = ".".join(str(c) for c in __version_info__)
