import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    client = django_filters.CharFilter(field_name="client_name", lookup_expr="icontains")
    start_from = django_filters.DateFilter(
        field_name="rental_start_date", lookup_expr="gte"
    )
    start_to = django_filters.DateFilter(
        field_name="rental_start_date", lookup_expr="lte"
    )
    worker = django_filters.UUIDFilter(field_name="workers__id")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "client",
            "start_from",
            "start_to",
            "worker",
            "min_total",
            "max_total",
        ]
