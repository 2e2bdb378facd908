"""Ball flight physics: aerodynamics, wind and trajectory integration."""
