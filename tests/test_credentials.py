"""
Test suite for CredentialHolder component
Following TDD approach with AAA pattern and descriptive naming
"""

import threading

import pytest

from rest_adapter.credentials import CredentialHolder
from rest_adapter.exceptions import APIError


class TestCredentialHolder:
    """Test suite for bearer credential storage"""

    def test_authorization_header_with_raw_token_adds_bearer_prefix(self):
        """
        Test that a bare token is sent with the Bearer scheme
        """
        # Act & Assert
        assert CredentialHolder('abc123').authorization_header() == 'Bearer abc123'

    def test_authorization_header_with_prefixed_token_keeps_value(self):
        """
        Test that a token already carrying the scheme is not prefixed twice
        """
        # Act & Assert
        assert CredentialHolder('Bearer abc123').authorization_header() == 'Bearer abc123'

    def test_authorization_header_after_set_uses_new_token(self):
        """
        Test that a rotated token is read on the next header build
        """
        # Arrange
        holder = CredentialHolder('old')

        # Act
        holder.set('new')

        # Assert
        assert holder.get() == 'new'
        assert holder.authorization_header() == 'Bearer new'

    def test_authorization_header_without_token_raises_api_error(self):
        """
        Test that a missing credential fails the call
        """
        # Act & Assert
        with pytest.raises(APIError):
            CredentialHolder().authorization_header()

    def test_set_from_several_threads_leaves_one_complete_token(self):
        """
        Test that concurrent refreshes leave one of the written values in place
        """
        # Arrange
        holder = CredentialHolder('initial')
        tokens = [f"token-{i}" for i in range(20)]
        threads = [threading.Thread(target=holder.set, args=(token,)) for token in tokens]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Assert
        assert holder.get() in tokens
