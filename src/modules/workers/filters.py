import django_filters

from modules.workers.models import Worker


class WorkerFilter(django_filters.FilterSet):
    role = django_filters.CharFilter(field_name="role", lookup_expr="iexact")
    is_active = django_filters.BooleanFilter(field_name="is_active")
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")

    class Meta:
        model = Worker
        fields = ["role", "is_active", "name"]
