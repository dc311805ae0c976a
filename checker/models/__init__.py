# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# users.dept_id → departments.id exige que department.py soit chargé.

from checker.models.department import Department  # noqa: F401  doit précéder user
from checker.models.user import User  # noqa: F401
from checker.models.punch import Punch  # noqa: F401
from checker.models.fire_drill import FireDrill, FireDrillCheck  # noqa: F401
from checker.models.backup import Backup  # noqa: F401
