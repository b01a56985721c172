"""Domain use cases (the poll loop lives in `stail.core.use_cases.tail`)."""
