# module partyhub.app
from partyhub.app_setup.factory import create_app

# App globale
app = create_app()
