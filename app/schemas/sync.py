from pydantic import BaseModel


class SyncResult(BaseModel):
    updated: int = 0
    failed: int = 0
    total: int = 0
    missing: int = 0
    complete: bool = True

    @property
    def partial(self) -> bool:
        return self.failed > 0 or not self.complete
