"""Instance graph: orbiting bodies and inter-satellite links."""

from isl_oracle.network.link import InterSatelliteLink
from isl_oracle.network.instance import Instance, LineGraph, parse_instance

__all__ = ["InterSatelliteLink", "Instance", "LineGraph", "parse_instance"]
