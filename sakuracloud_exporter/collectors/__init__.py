"""Collectors that turn VPC routers, zones and web acceleration sites into metrics."""