import unittest
from unittest.mock import Mock, patch

from libs.common.settings import Settings

# Target for patching should be the absolute path to the module
# This ensures that the mocks are applied correctly
FIREBASE_CLIENT_PATH = 'libs.firebase.client'


def _settings(**overrides):
    return Settings(app_env="test", **overrides)


class TestFirebase(unittest.TestCase):

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {})
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.credentials.Certificate')
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    def test_initialize_firebase_app_from_json(self, mock_settings, mock_certificate, mock_initialize_app):
        # Arrange
        mock_settings.return_value = _settings(firebase_admin_sdk_json='{}', firebase_project_id='casepath-test')

        # Act
        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        # Assert
        mock_certificate.assert_called_once_with({})
        mock_initialize_app.assert_called_once_with(mock_certificate.return_value, {"projectId": "casepath-test"})

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {})
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.credentials.Certificate')
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    def test_invalid_json_skips_initialization(self, mock_settings, mock_certificate, mock_initialize_app):
        mock_settings.return_value = _settings(firebase_admin_sdk_json='not-json')

        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        mock_certificate.assert_not_called()
        mock_initialize_app.assert_not_called()

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {})
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    def test_initialize_without_credentials_uses_defaults(self, mock_settings, mock_initialize_app):
        mock_settings.return_value = _settings()

        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        mock_initialize_app.assert_called_once_with(options=None)

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {'[DEFAULT]': Mock()})
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    def test_initialize_is_idempotent(self, mock_initialize_app):
        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        mock_initialize_app.assert_not_called()

    @patch(f'{FIREBASE_CLIENT_PATH}.initialize_firebase_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.AsyncClient')
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    def test_get_firestore_async_client(self, mock_settings, mock_async_client, mock_initialize_app):
        # Arrange
        mock_settings.return_value = _settings(firebase_project_id='casepath-test')
        from libs.firebase.client import get_firestore_async_client

        # Act
        client = get_firestore_async_client()

        # Assert
        mock_initialize_app.assert_called_once()
        mock_async_client.assert_called_once_with(project='casepath-test', database='(default)')
        self.assertIs(client, mock_async_client.return_value)


if __name__ == '__main__':
    unittest.main()
