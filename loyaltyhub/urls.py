from django.urls import path

from loyaltyhub import views

app_name = "loyaltyhub"

urlpatterns = [
    path("identify/", views.IdentifyView.as_view(), name="identify"),
    path("register/", views.RegisterView.as_view(), name="register"),
    path("identifiers/", views.IdentifierView.as_view(), name="identifiers"),
    path("transaction/", views.TransactionView.as_view(), name="transaction"),
    path("sync/", views.SyncView.as_view(), name="sync"),
    path("promos/validate/", views.PromoValidateView.as_view(), name="promo-validate"),
    path("promos/apply/", views.PromoApplyView.as_view(), name="promo-apply"),
]
