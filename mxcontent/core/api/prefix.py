"""URL path prefixes and HTTP methods used by the client."""


class Method:
    GET = 'GET'
    PUT = 'PUT'
    POST = 'POST'
    DELETE = 'DELETE'


class ClientPrefix:
    V3 = '/_matrix/client/v3'


class MediaPrefix:
    R0 = '/_matrix/media/r0'
    V3 = '/_matrix/media/v3'


UPLOAD_PATH = '/upload'
