"""Tests des endpoints patients et référence avec authentification Keycloak mockée."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm.exc import StaleDataError

from app.api.v1.api import router
from app.core.database import get_session
from app.core.security import User, get_current_user
from app.models import Allergie, Antecedent, Patient
from app.schemas.patient import PatientEditView, PatientFields

LIST_URL = "/api/v1/patients/"


@pytest.fixture
def db_session_mock():
    """Session de base de données mockée."""
    session = AsyncMock()
    session.execute.return_value = MagicMock()
    return session


@pytest.fixture
def editor_user():
    """Utilisateur avec le rôle professional."""
    return User(
        sub="prof-uuid-789",
        preferred_username="dr.martin",
        realm_access={"roles": ["professional"]},
    )


@pytest.fixture
def reader_user():
    """Utilisateur authentifié sans rôle d'édition."""
    return User(sub="reader-uuid-123", realm_access={"roles": ["offline_access"]})


@pytest.fixture
def app(db_session_mock, editor_user):
    """Fixture pour une application FastAPI minimale pour tests."""
    test_app = FastAPI()

    async def mock_get_session():
        yield db_session_mock

    test_app.dependency_overrides[get_session] = mock_get_session
    test_app.dependency_overrides[get_current_user] = lambda: editor_user
    test_app.include_router(router, prefix="/api/v1")
    return test_app


@pytest.fixture
def client(app):
    """Fixture pour le client de test FastAPI."""
    return TestClient(app)


@pytest.fixture
def patient_payload():
    """Formulaire patient valide."""
    return {
        "last_name": "Durand",
        "first_name": "Alice",
        "sex": "female",
        "social_security_number": "123",
        "selected_antecedent_ids": [1, 3],
        "selected_allergie_ids": [],
    }


@pytest.fixture
def sample_patient():
    """Patient transient pour les réponses mockées."""
    return Patient(
        id=5,
        last_name="Martin",
        first_name="Paul",
        sex="male",
        social_security_number="1 85 05 78 006 084 36",
    )


@pytest.fixture
def edit_view():
    """Vue d'édition du patient 5."""
    return PatientEditView(
        patient=PatientFields(
            id=5,
            last_name="Martin",
            first_name="Paul",
            sex="male",
            social_security_number="1 85 05 78 006 084 36",
        ),
        antecedents=[{"id": 1, "label": "Asthme"}],
        allergies=[{"id": 2, "label": "Arachide"}],
        selected_antecedent_ids=[1],
    )


class TestAuthorization:
    """Tests des permissions (lecture authentifiée, écriture admin/professional)."""

    def test_list_requires_authentication(self, app):
        """Test 401 sans token."""
        del app.dependency_overrides[get_current_user]
        client = TestClient(app)

        response = client.get(LIST_URL)

        assert response.status_code == 401

    def test_reader_can_list(self, app, client, reader_user):
        """Test qu'un utilisateur authentifié sans rôle peut lire la liste."""
        app.dependency_overrides[get_current_user] = lambda: reader_user

        with patch(
            "app.services.patient_service.list_patients", new=AsyncMock(return_value=[])
        ):
            response = client.get(LIST_URL)

        assert response.status_code == 200

    @pytest.mark.parametrize(
        ("method", "url"),
        [
            ("get", "/api/v1/patients/new"),
            ("post", LIST_URL),
            ("get", "/api/v1/patients/5/edit"),
            ("put", "/api/v1/patients/5"),
            ("get", "/api/v1/patients/5/delete"),
            ("delete", "/api/v1/patients/5"),
        ],
    )
    def test_write_operations_require_editor_role(
        self, app, client, reader_user, patient_payload, method, url
    ):
        """Test 403 pour chaque opération d'écriture sans rôle admin/professional."""
        app.dependency_overrides[get_current_user] = lambda: reader_user
        kwargs = {"json": {**patient_payload, "id": 5}} if method in ("post", "put") else {}

        with (
            patch("app.services.patient_service.create_patient", new=AsyncMock()) as mock_create,
            patch("app.services.patient_service.update_patient", new=AsyncMock()) as mock_update,
            patch("app.services.patient_service.delete_patient", new=AsyncMock()) as mock_delete,
        ):
            response = client.request(method.upper(), url, **kwargs)

        assert response.status_code == 403
        mock_create.assert_not_called()
        mock_update.assert_not_called()
        mock_delete.assert_not_called()


class TestReadEndpoints:
    """Tests liste et détail."""

    def test_list_patients(self, client, sample_patient):
        """Test liste des patients."""
        with patch(
            "app.services.patient_service.list_patients",
            new=AsyncMock(return_value=[sample_patient]),
        ):
            response = client.get(LIST_URL)

        assert response.status_code == 200
        data = response.json()
        assert data == [
            {
                "id": 5,
                "last_name": "Martin",
                "first_name": "Paul",
                "sex": "male",
                "social_security_number": "1 85 05 78 006 084 36",
            }
        ]

    def test_details(self, client, sample_patient, edit_view):
        """Test détail avec listes de référence et sélections."""
        with (
            patch(
                "app.services.patient_service.get_patient_with_associations",
                new=AsyncMock(return_value=sample_patient),
            ),
            patch(
                "app.services.patient_service.build_edit_view",
                new=AsyncMock(return_value=edit_view),
            ),
        ):
            response = client.get("/api/v1/patients/5")

        assert response.status_code == 200
        data = response.json()
        assert data["patient"]["id"] == 5
        assert data["selected_antecedent_ids"] == [1]
        assert data["allergies"] == [{"id": 2, "label": "Arachide"}]

    def test_details_not_found(self, client):
        """Test 404 sans construire de vue."""
        with (
            patch(
                "app.services.patient_service.get_patient_with_associations",
                new=AsyncMock(return_value=None),
            ),
            patch("app.services.patient_service.build_edit_view", new=AsyncMock()) as mock_view,
        ):
            response = client.get("/api/v1/patients/999")

        assert response.status_code == 404
        assert "999" in response.json()["detail"]
        mock_view.assert_not_called()

    @pytest.mark.parametrize(
        "url",
        [
            "/api/v1/patients/3000000000",
            "/api/v1/patients/3000000000/edit",
            "/api/v1/patients/3000000000/delete",
        ],
    )
    def test_id_beyond_column_range_is_not_found(self, client, db_session_mock, url):
        """Test 404 pour un ID trop grand pour la colonne, sans requête en base."""
        response = client.get(url)

        assert response.status_code == 404
        db_session_mock.execute.assert_not_awaited()

    def test_new_patient_form(self, client):
        """Test formulaire de création vide."""
        view = PatientEditView(patient=PatientFields(), antecedents=[{"id": 1, "label": "Asthme"}])
        with patch(
            "app.services.patient_service.new_patient_view", new=AsyncMock(return_value=view)
        ):
            response = client.get("/api/v1/patients/new")

        assert response.status_code == 200
        data = response.json()
        assert data["patient"]["id"] is None
        assert data["patient"]["sex"] == "male"


class TestCreatePatient:
    """Tests POST /patients/."""

    def test_create_redirects_to_list(self, client, patient_payload, editor_user):
        """Test création réussie: 303 vers la liste."""
        with patch("app.services.patient_service.create_patient", new=AsyncMock()) as mock_create:
            response = client.post(LIST_URL, json=patient_payload, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"].endswith(LIST_URL)
        mock_create.assert_awaited_once()
        kwargs = mock_create.call_args.kwargs
        assert kwargs["patient_data"].selected_antecedent_ids == [1, 3]
        assert kwargs["current_user_id"] == editor_user.sub

    def test_create_invalid_form_is_redisplayed(self, client):
        """Test 422: saisie conservée, erreurs par champ, listes rechargées."""
        submitted = {"last_name": "", "first_name": "Alice", "sex": "female"}

        with (
            patch(
                "app.services.patient_service.list_antecedents",
                new=AsyncMock(return_value=[Antecedent(id=1, label="Asthme")]),
            ),
            patch(
                "app.services.patient_service.list_allergies",
                new=AsyncMock(return_value=[Allergie(id=2, label="Arachide")]),
            ),
            patch("app.services.patient_service.create_patient", new=AsyncMock()) as mock_create,
        ):
            response = client.post(LIST_URL, json=submitted, follow_redirects=False)

        assert response.status_code == 422
        data = response.json()
        assert data["submitted"] == submitted
        fields = {error["field"] for error in data["errors"]}
        assert {"last_name", "social_security_number"} <= fields
        assert data["antecedents"] == [{"id": 1, "label": "Asthme"}]
        assert data["allergies"] == [{"id": 2, "label": "Arachide"}]
        mock_create.assert_not_called()


class TestUpdatePatient:
    """Tests PUT /patients/{id}."""

    def test_update_redirects_to_list(self, client, patient_payload, sample_patient):
        """Test édition réussie: 303 vers la liste."""
        with patch(
            "app.services.patient_service.update_patient",
            new=AsyncMock(return_value=sample_patient),
        ) as mock_update:
            response = client.put(
                "/api/v1/patients/5", json={**patient_payload, "id": 5}, follow_redirects=False
            )

        assert response.status_code == 303
        assert response.headers["location"].endswith(LIST_URL)
        assert mock_update.call_args.kwargs["patient_id"] == 5

    def test_update_id_mismatch_is_not_found(self, client, patient_payload):
        """Test 404 si l'ID soumis diffère de l'ID du chemin, sans accès au stockage."""
        with patch("app.services.patient_service.update_patient", new=AsyncMock()) as mock_update:
            response = client.put("/api/v1/patients/5", json={**patient_payload, "id": 6})

        assert response.status_code == 404
        mock_update.assert_not_called()

    def test_update_missing_id_is_not_found(self, client, patient_payload):
        """Test 404 si le formulaire ne porte pas d'ID."""
        with patch("app.services.patient_service.update_patient", new=AsyncMock()) as mock_update:
            response = client.put("/api/v1/patients/5", json=patient_payload)

        assert response.status_code == 404
        mock_update.assert_not_called()

    @pytest.mark.parametrize("submitted_id", [5.7, "5", True, None])
    def test_update_non_integer_id_is_not_found(self, client, patient_payload, submitted_id):
        """Test 404 si l'ID soumis n'est pas un entier, même convertible."""
        with patch("app.services.patient_service.update_patient", new=AsyncMock()) as mock_update:
            response = client.put("/api/v1/patients/5", json={**patient_payload, "id": submitted_id})

        assert response.status_code == 404
        mock_update.assert_not_called()

    def test_update_id_beyond_column_range(self, client, patient_payload, db_session_mock):
        """Test 404 pour un ID trop grand pour la colonne, sans requête en base."""
        huge_id = 3_000_000_000
        response = client.put(
            f"/api/v1/patients/{huge_id}", json={**patient_payload, "id": huge_id}
        )

        assert response.status_code == 404
        db_session_mock.execute.assert_not_awaited()

    def test_update_vanished_patient(self, client, patient_payload):
        """Test 404 si le patient n'existe pas ou a été supprimé entre-temps."""
        with patch(
            "app.services.patient_service.update_patient", new=AsyncMock(return_value=None)
        ):
            response = client.put("/api/v1/patients/5", json={**patient_payload, "id": 5})

        assert response.status_code == 404

    def test_update_invalid_form(self, client, patient_payload):
        """Test 422 sur formulaire d'édition invalide."""
        submitted = {**patient_payload, "id": 5, "sex": "other"}

        with (
            patch("app.services.patient_service.list_antecedents", new=AsyncMock(return_value=[])),
            patch("app.services.patient_service.list_allergies", new=AsyncMock(return_value=[])),
            patch("app.services.patient_service.update_patient", new=AsyncMock()) as mock_update,
        ):
            response = client.put("/api/v1/patients/5", json=submitted)

        assert response.status_code == 422
        assert response.json()["submitted"]["sex"] == "other"
        mock_update.assert_not_called()

    def test_update_concurrent_conflict_is_server_error(self, app, patient_payload):
        """Test qu'un conflit de version non résolu produit une erreur serveur."""
        client = TestClient(app, raise_server_exceptions=False)

        with patch(
            "app.services.patient_service.update_patient",
            new=AsyncMock(side_effect=StaleDataError("version mismatch")),
        ):
            response = client.put("/api/v1/patients/5", json={**patient_payload, "id": 5})

        assert response.status_code == 500

    def test_edit_form_not_found(self, client):
        """Test 404 sur le formulaire d'édition d'un patient inexistant."""
        with patch(
            "app.services.patient_service.get_patient_with_associations",
            new=AsyncMock(return_value=None),
        ):
            response = client.get("/api/v1/patients/999/edit")

        assert response.status_code == 404


class TestDeletePatient:
    """Tests confirmation et suppression."""

    def test_confirm_delete_not_found(self, client):
        """Test 404 sur la confirmation d'un patient inexistant."""
        with patch("app.services.patient_service.get_patient", new=AsyncMock(return_value=None)):
            response = client.get("/api/v1/patients/999/delete")

        assert response.status_code == 404

    def test_delete_redirects_to_list(self, client):
        """Test suppression réussie: 303 vers la liste."""
        with patch(
            "app.services.patient_service.delete_patient", new=AsyncMock(return_value=True)
        ) as mock_delete:
            response = client.delete("/api/v1/patients/5", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"].endswith(LIST_URL)
        assert mock_delete.call_args.kwargs["patient_id"] == 5

    def test_delete_not_found(self, client):
        """Test 404 si le patient n'existe pas."""
        with patch(
            "app.services.patient_service.delete_patient", new=AsyncMock(return_value=False)
        ):
            response = client.delete("/api/v1/patients/999", follow_redirects=False)

        assert response.status_code == 404

    def test_delete_id_beyond_column_range(self, client, db_session_mock):
        """Test 404 pour un ID trop grand pour la colonne."""
        response = client.delete("/api/v1/patients/3000000000", follow_redirects=False)

        assert response.status_code == 404
        db_session_mock.execute.assert_not_awaited()
        db_session_mock.commit.assert_not_awaited()


class TestReferenceEndpoints:
    """Tests des listes de référence et du health check."""

    def test_list_antecedents(self, client):
        """Test liste des antécédents."""
        with patch(
            "app.services.reference_service.list_antecedents",
            new=AsyncMock(return_value=[Antecedent(id=1, label="Asthme")]),
        ):
            response = client.get("/api/v1/antecedents/")

        assert response.status_code == 200
        assert response.json() == [{"id": 1, "label": "Asthme"}]

    def test_list_allergies(self, client):
        """Test liste des allergies."""
        with patch(
            "app.services.reference_service.list_allergies",
            new=AsyncMock(return_value=[Allergie(id=4, label="Pollen")]),
        ):
            response = client.get("/api/v1/allergies/")

        assert response.status_code == 200
        assert response.json() == [{"id": 4, "label": "Pollen"}]

    def test_health(self, client):
        """Test health check."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_database_down(self, client, db_session_mock):
        """Test health check quand la base ne répond pas."""
        db_session_mock.execute.side_effect = ConnectionError("connection refused")

        response = client.get("/api/v1/health")

        assert response.status_code == 500
