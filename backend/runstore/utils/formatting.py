from runstore.schemas import AppRecord


def format_file_size(size_bytes: int) -> str:
    """
    Docstring для format_file_size

    :param size_bytes: Размер файла в байтах
    :type size_bytes: int
    :return: Размер в KB до мегабайта, дальше в MB ("512.0 KB", "3.4 MB")
    :rtype: str
    """
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def format_downloads(count: int) -> str:
    """1 download / 2 downloads, с разделителем тысяч"""
    return f"{count:,} {'download' if count == 1 else 'downloads'}"


def describe_app(app: AppRecord) -> str:
    """Одна строка для CLI: имя, версия, статус, размер, скачивания"""
    line = (
        f"{app.name} v{app.version} [{app.status.value}] "
        f"{format_file_size(app.file_size)}, {format_downloads(app.downloads)}"
    )
    if app.rejection_reason:
        line += f" - {app.rejection_reason}"
    return line
