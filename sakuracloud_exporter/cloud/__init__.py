"""Resource clients over a SakuraCloud API object, with caching and per-zone queries."""