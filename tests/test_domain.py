"""Validation rules of the request models."""
import pytest
from pydantic import ValidationError

from app.core.errors import map_errors
from app.domain.product import ProductDetail, ProductInput, ProductUpdate, ProductView
from app.domain.user import AuthResponse, Credentials, PaletteUpdate, ThemeUpdate, UserState


def messages(exc_info) -> list:
    return [e["msg"] for e in map_errors(exc_info.value)]


class TestCredentials:
    """Username and password rules for registration."""

    def test_valid_credentials(self):
        credentials = Credentials(username=" jsmith ", password="secure123")

        assert credentials.username == "jsmith"
        assert credentials.password == "secure123"

    @pytest.mark.parametrize("username,message", [
        (None, "Username is required"),
        ("   ", "Username is required"),
        ("abcd", "Username must be at least five characters"),
        ("abcdefghijk", "Username must be no more than ten characters"),
        ("1abcdef", "Username must start with a letter and can only contain alphanumeric characters"),
        ("abc_def", "Username must start with a letter and can only contain alphanumeric characters"),
    ])
    def test_invalid_username(self, username, message):
        with pytest.raises(ValidationError) as exc_info:
            Credentials(username=username, password="secure123")

        assert messages(exc_info) == [message]

    @pytest.mark.parametrize("password,message", [
        (None, "Password is required"),
        ("", "Password is required"),
        ("12345", "Password must be at least six characters"),
    ])
    def test_invalid_password(self, password, message):
        with pytest.raises(ValidationError) as exc_info:
            Credentials(username="jsmith", password=password)

        assert messages(exc_info) == [message]

    def test_every_failing_field_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            Credentials()

        assert messages(exc_info) == ["Username is required", "Password is required"]


class TestProductInput:
    """Name, price and image rules for new products."""

    def test_price_is_rounded_to_cents(self):
        product = ProductInput(name="Pixel icon pack", price="4.999", image=" https://x/img.png ")

        assert product.price == 5.0
        assert product.image == "https://x/img.png"

    @pytest.mark.parametrize("name,message", [
        (None, "Product name is required"),
        ("Pack", "Product name must be at least five characters"),
        ("x" * 101, "Product name must be no more than 100 characters"),
    ])
    def test_invalid_name(self, name, message):
        with pytest.raises(ValidationError) as exc_info:
            ProductInput(name=name, price=1, image="https://x/img.png")

        assert messages(exc_info) == [message]

    @pytest.mark.parametrize("price,message", [
        (None, "Price is required"),
        ("", "Price is required"),
        ("ten", "Price must be a number"),
        (True, "Price must be a number"),
        ("nan", "Price must be a number"),
        ("1e400", "Price must be a number"),
        (10 ** 400, "Price must be a number"),
        (0, "Price must be at least 0.01$"),
        (-3, "Price must be at least 0.01$"),
    ])
    def test_invalid_price(self, price, message):
        with pytest.raises(ValidationError) as exc_info:
            ProductInput(name="Pixel icon pack", price=price, image="https://x/img.png")

        assert messages(exc_info) == [message]

    def test_image_is_required(self):
        with pytest.raises(ValidationError) as exc_info:
            ProductInput(name="Pixel icon pack", price=1)

        assert messages(exc_info) == ["Image is required"]


class TestProductUpdate:
    def test_fields_are_optional(self):
        update = ProductUpdate()

        assert update.model_dump(exclude_none=True) == {}

    def test_same_rules_as_creation(self):
        with pytest.raises(ValidationError) as exc_info:
            ProductUpdate(name="abc", price=0)

        assert messages(exc_info) == [
            "Product name must be at least five characters",
            "Price must be at least 0.01$",
        ]

    def test_price_too_large_for_a_float(self):
        with pytest.raises(ValidationError) as exc_info:
            ProductUpdate(price=10 ** 400)

        assert messages(exc_info) == ["Price must be a number"]


class TestPreferences:
    def test_valid_theme_and_palette(self):
        assert ThemeUpdate(theme="dark").theme == "dark"
        assert PaletteUpdate(palette="deepPurple").palette == "deepPurple"

    def test_invalid_theme(self):
        with pytest.raises(ValidationError) as exc_info:
            ThemeUpdate(theme="sepia")

        assert messages(exc_info) == ["Invalid theme"]

    def test_invalid_palette(self):
        with pytest.raises(ValidationError) as exc_info:
            PaletteUpdate()

        assert messages(exc_info) == ["Invalid palette"]


class TestSerialization:
    """Wire names of the response models."""

    def test_user_state_aliases(self):
        user = UserState.model_validate({"_id": "abc", "username": "jsmith"})

        assert user.id == "abc"
        assert user.model_dump(by_alias=True)["_id"] == "abc"

    def test_auth_response_carries_access_token(self):
        response = AuthResponse(id="abc", username="jsmith", access_token="t0k3n")

        assert response.model_dump(by_alias=True) == {
            "_id": "abc",
            "username": "jsmith",
            "palette": "deepPurple",
            "theme": "light",
            "accessToken": "t0k3n",
        }

    def test_product_detail_flags(self):
        detail = ProductDetail(id="p1", name="Pixel icon pack", price=1.5, image="img", has_bought=True)
        body = detail.model_dump(by_alias=True)

        assert body["hasBought"] is True
        assert body["isOwner"] is False
        assert body["isLogged"] is False

    def test_product_view_hides_owner(self, product):
        body = ProductView.from_product(product).model_dump(by_alias=True)

        assert set(body) == {"_id", "name", "price", "image"}
