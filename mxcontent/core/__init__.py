"""Core building blocks of the mxcontent client."""
