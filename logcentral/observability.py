from __future__ import annotations

import logging
from dataclasses import dataclass

from .service import LogCentralService


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@dataclass
class Observability:
    service: LogCentralService

    def snapshot(self) -> dict[str, int]:
        slices, failures = self.service.summary_snapshot()
        return {
            "products": len(self.service.list_products()),
            "logs_total": sum(item.count for item in slices),
            "products_unavailable": len(failures),
            "summary_recomputations": self.service.summary().recompute_count,
        }
