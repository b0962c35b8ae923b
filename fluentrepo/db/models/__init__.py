from fluentrepo.db.models.user import User
from fluentrepo.db.models.view_count import ViewCount

__all__ = ["User", "ViewCount"]
