from rest_framework.pagination import PageNumberPagination


class PaginacionInventario(PageNumberPagination):
    """?page=N&limit=M, con el total de registros en `count`."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100
