# Creative classification, enrichment and caching
